"""The spawned test window and its accessibility probe.

The live runner never touches the page under test directly. A controller page
is opened first (on the application origin) and it spawns the test window with
``window.open``; every DOM operation is then issued from the controller page
through that handle, so the browser's same-origin policy decides what the
runner may inspect.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

LOGGER = logging.getLogger("executor_mvp.window")

WINDOW_NAME = "testWindow"
WINDOW_WIDTH = 1200
WINDOW_HEIGHT = 800

PLACEHOLDER_HTML = """<!DOCTYPE html>
<html>
  <head>
    <title>Test Runner Window</title>
    <style>
      body { font-family: Arial, sans-serif; padding: 20px; }
      .loading { text-align: center; margin-top: 50px; }
    </style>
  </head>
  <body>
    <div class="loading">
      <h2>Test Runner</h2>
      <p>Preparing to run test...</p>
    </div>
  </body>
</html>
"""


class Accessibility(str, Enum):
    """Result of probing the test window."""

    ACCESSIBLE = "accessible"
    CROSS_ORIGIN = "cross-origin"
    CLOSED = "closed"


class WindowUnavailableError(RuntimeError):
    """The test window could not be spawned (e.g. popups blocked)."""


class WindowError(RuntimeError):
    """A DOM operation on the test window raised."""


class TestWindow(ABC):
    """Handle on the spawned browsing context."""

    __test__ = False

    @abstractmethod
    def probe(self) -> Accessibility:
        """Tell whether the window is inspectable, cross-origin, or closed."""

    @abstractmethod
    def write_placeholder(self, html: str) -> None:
        ...

    @abstractmethod
    def navigate(self, url: str) -> None:
        ...

    @abstractmethod
    def click(self, selector: str) -> bool:
        """Click the first match; False when nothing matches."""

    @abstractmethod
    def fill(self, selector: str, value: str) -> bool:
        """Set the value of the first match and fire input/change events."""

    @abstractmethod
    def is_visible(self, selector: str) -> bool:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class WindowSource(ABC):
    """Acquires a test window for the duration of one run."""

    @abstractmethod
    @contextmanager
    def open(self) -> Iterator[TestWindow]:
        """Yield a freshly spawned window and release it on every exit path.

        Raises:
            WindowUnavailableError: When no window can be spawned.
        """


_OPEN_SCRIPT = """
([name, width, height]) => {
    const left = Math.max(0, (window.screen.width - width) / 2);
    const top = Math.max(0, (window.screen.height - height) / 2);
    const features = `width=${width},height=${height},left=${left},top=${top},resizable=yes,scrollbars=yes`;
    window.__testWindow = window.open('', name, features);
    return window.__testWindow !== null && window.__testWindow !== undefined;
}
"""

_PROBE_SCRIPT = """
() => {
    const w = window.__testWindow;
    if (!w) return 'closed';
    let closed = false;
    try {
        closed = w.closed;
    } catch (e) {
        // reading the flag itself can throw across origins; the window is still open
        closed = false;
    }
    if (closed) return 'closed';
    try {
        void w.location.href;
        return 'accessible';
    } catch (e) {
        return 'cross-origin';
    }
}
"""

_WRITE_SCRIPT = """
(html) => {
    const doc = window.__testWindow.document;
    doc.open();
    doc.write(html);
    doc.close();
}
"""

_NAVIGATE_SCRIPT = "(url) => { window.__testWindow.location.href = url; }"

_CLICK_SCRIPT = """
(selector) => {
    const element = window.__testWindow.document.querySelector(selector);
    if (!element) return false;
    element.click();
    return true;
}
"""

_FILL_SCRIPT = """
([selector, value]) => {
    const w = window.__testWindow;
    const element = w.document.querySelector(selector);
    if (!element) return false;
    element.value = value;
    element.dispatchEvent(new w.Event('input', { bubbles: true }));
    element.dispatchEvent(new w.Event('change', { bubbles: true }));
    return true;
}
"""

_VISIBLE_SCRIPT = """
(selector) => {
    const element = window.__testWindow.document.querySelector(selector);
    return Boolean(element && element.offsetParent !== null);
}
"""

_CLOSE_SCRIPT = "() => { if (window.__testWindow && !window.__testWindow.closed) window.__testWindow.close(); }"


class PlaywrightTestWindow(TestWindow):
    """Test window driven from a Playwright controller page."""

    def __init__(self, controller_page) -> None:
        self.page = controller_page

    def probe(self) -> Accessibility:
        try:
            state = self.page.evaluate(_PROBE_SCRIPT)
        except PlaywrightError as exc:
            LOGGER.info("Controller page unavailable, treating test window as closed: %s", exc)
            return Accessibility.CLOSED
        return Accessibility(state)

    def write_placeholder(self, html: str) -> None:
        self._evaluate(_WRITE_SCRIPT, html)

    def navigate(self, url: str) -> None:
        self._evaluate(_NAVIGATE_SCRIPT, url)

    def click(self, selector: str) -> bool:
        return bool(self._evaluate(_CLICK_SCRIPT, selector))

    def fill(self, selector: str, value: str) -> bool:
        return bool(self._evaluate(_FILL_SCRIPT, [selector, value]))

    def is_visible(self, selector: str) -> bool:
        return bool(self._evaluate(_VISIBLE_SCRIPT, selector))

    def close(self) -> None:
        try:
            self.page.evaluate(_CLOSE_SCRIPT)
        except PlaywrightError as exc:  # pragma: no cover - best effort
            LOGGER.debug("Closing test window failed: %s", exc)

    def _evaluate(self, script: str, arg):
        try:
            return self.page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise WindowError(_first_line(str(exc))) from exc


@dataclass
# pylint: disable=too-few-public-methods
class BrowserSettings:
    """Runtime knobs for the Playwright-backed window source."""

    headless: bool = False
    opener_url: Optional[str] = None
    default_timeout_ms: int = 10_000
    slow_mo_ms: int = 0


class PlaywrightWindowSource(WindowSource):
    """Launches Chromium and spawns the test window from a controller page.

    ``opener_url`` is the origin the controller page is loaded from. Pages of
    that origin stay inspectable; any other origin is reported cross-origin.
    """

    def __init__(self, settings: Optional[BrowserSettings] = None) -> None:
        self.settings = settings or BrowserSettings()

    @contextmanager
    def open(self) -> Iterator[TestWindow]:
        with sync_playwright() as playwright:
            try:
                browser = playwright.chromium.launch(headless=self.settings.headless,
                                                     slow_mo=self.settings.slow_mo_ms)
            except PlaywrightError as exc:
                raise WindowUnavailableError(f"Browser launch failed: {_first_line(str(exc))}") from exc
            context = browser.new_context(viewport={"width": WINDOW_WIDTH, "height": WINDOW_HEIGHT})
            window: Optional[PlaywrightTestWindow] = None
            try:
                page = context.new_page()
                page.set_default_timeout(self.settings.default_timeout_ms)
                window = PlaywrightTestWindow(self._open_controller(page))
                yield window
            finally:
                if window is not None:
                    window.close()
                context.close()
                browser.close()

    def _open_controller(self, page):
        try:
            if self.settings.opener_url:
                page.goto(self.settings.opener_url)
            opened = page.evaluate(_OPEN_SCRIPT, [WINDOW_NAME, WINDOW_WIDTH, WINDOW_HEIGHT])
        except PlaywrightError as exc:
            raise WindowUnavailableError(f"Controller page failed: {_first_line(str(exc))}") from exc
        if not opened:
            raise WindowUnavailableError("window.open returned no window")
        LOGGER.info("Test window spawned from %s", self.settings.opener_url or "about:blank")
        return page


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else text
