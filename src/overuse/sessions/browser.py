"""Playwright session factory: remote browser over CDP (or local Chromium) plus dashboard login."""

import logging
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeout

from ..config import OveruseSettings
from ..exceptions import ConfigurationError, LoginError
from ..utils.retry_utils import BackoffStrategy, with_retry

logger = logging.getLogger(__name__)

EMAIL_SELECTOR = 'input[name="email"]'
PASSWORD_SELECTOR = 'input[name="password"]'
SUBMIT_SELECTOR = 'button[type="submit"]'
DASHBOARD_URL_PATTERN = "**/dashboard**"


@dataclass
class BrowserSession:
    """Everything one logged-in dashboard session owns."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page
    remote: bool = False


class PlaywrightSessionFactory:
    """Opens browser sessions and logs them into the billing dashboard."""

    def __init__(self, settings: OveruseSettings, login_attempts: int = 3, login_backoff: float = 1.0):
        self.settings = settings
        self.login_attempts = login_attempts
        self.login_backoff = login_backoff

    async def open(self) -> BrowserSession:
        s = self.settings
        if not s.has_browser_endpoint():
            raise ConfigurationError(
                "BROWSER_WS_URL",
                "BROWSER_WS_URL is not configured (or set FORCE_LOCAL_CHROMIUM=true)",
            )
        pw = await async_playwright().start()
        try:
            remote = bool(s.BROWSER_WS_URL) and not s.FORCE_LOCAL_CHROMIUM
            if remote:
                logger.info("Connecting to remote browser over CDP")
                browser = await pw.chromium.connect_over_cdp(s.BROWSER_WS_URL)
            else:
                logger.info("Launching local Chromium (headless=%s)", s.BROWSER_HEADLESS)
                launch_kwargs = {"headless": s.BROWSER_HEADLESS}
                if s.PROXY_URL:
                    launch_kwargs["proxy"] = {"server": s.PROXY_URL}
                browser = await pw.chromium.launch(**launch_kwargs)
            context = await browser.new_context()
            context.set_default_timeout(s.PAGE_TIMEOUT_MS)
            context.set_default_navigation_timeout(s.NAVIGATION_TIMEOUT_MS)
            page = await context.new_page()
        except Exception:
            await pw.stop()
            raise
        return BrowserSession(playwright=pw, browser=browser, context=context, page=page, remote=remote)

    async def login(self, handle: BrowserSession) -> None:
        """Log in once, retrying with linear backoff."""
        s = self.settings
        if not s.has_dashboard_credentials():
            raise ConfigurationError(
                "DASHBOARD_EMAIL",
                "DASHBOARD_EMAIL and DASHBOARD_PASSWORD must be set to log into the billing dashboard",
            )

        async def attempt_login(attempt: int) -> None:
            page = handle.page
            await page.goto(s.login_url, wait_until="domcontentloaded")
            if "dashboard" in page.url:
                logger.info("Already logged in (attempt %s)", attempt)
                return
            await page.locator(EMAIL_SELECTOR).fill(s.DASHBOARD_EMAIL or "")
            await page.locator(PASSWORD_SELECTOR).fill(s.DASHBOARD_PASSWORD or "")
            await page.locator(SUBMIT_SELECTOR).click()
            try:
                await page.wait_for_url(DASHBOARD_URL_PATTERN, timeout=s.NAVIGATION_TIMEOUT_MS)
            except PlaywrightTimeout as e:
                raise LoginError(f"Login did not reach the dashboard (at {page.url})") from e
            logger.info("Logged into dashboard")

        await with_retry(
            attempt_login,
            attempts=self.login_attempts,
            backoff=self.login_backoff,
            strategy=BackoffStrategy.LINEAR,
            label="login",
        )

    async def close(self, handle: Optional[BrowserSession]) -> None:
        if handle is None:
            return
        try:
            await handle.context.close()
        finally:
            try:
                await handle.browser.close()
            finally:
                await handle.playwright.stop()
