"""Browser helpers: launch Chromium and build capture contexts."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

# Hides the usual headless markers so live hosts serve the page a regular browser gets.
_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
if (!window.chrome) { window.chrome = { runtime: {} }; }
"""

_LAZY_LOAD_SCROLL = """
async ([step, interval]) => {
    await new Promise((resolve) => {
        let travelled = 0;
        const timer = setInterval(() => {
            const scrollHeight = document.body ? document.body.scrollHeight : 0;
            window.scrollBy(0, step);
            travelled += step;
            if (travelled >= scrollHeight) {
                clearInterval(timer);
                window.scrollTo(0, 0);
                resolve();
            }
        }, interval);
    });
}
"""


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium with the flags used for page captures."""
    return await playwright.chromium.launch(
        headless=headless,
        args=[
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-blink-features=AutomationControlled",
        ],
    )


async def create_capture_context(
    browser: Browser,
    viewport: dict,
    user_agent: Optional[str] = None,
    reduced_motion: bool = True,
) -> BrowserContext:
    """Create an isolated context sized to one viewport.

    Device scale factor is pinned to 1 so screenshots have the same pixel
    dimensions as the CSS viewport on every machine.
    """
    context = await browser.new_context(
        viewport=viewport,
        device_scale_factor=1,
        user_agent=user_agent or DEFAULT_USER_AGENT,
        locale="en-US",
        timezone_id="America/New_York",
        reduced_motion="reduce" if reduced_motion else "no-preference",
        extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
    )
    await context.add_init_script(_INIT_SCRIPT)
    return context


async def scroll_for_lazy_load(page: Page, step_px: int = 100, interval_ms: int = 100) -> None:
    """Scroll to the bottom in steps, then back to the top, to trigger lazy loading."""
    await page.evaluate(_LAZY_LOAD_SCROLL, [step_px, interval_ms])
