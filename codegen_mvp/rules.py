"""Per-target translation rules from a step to a line (or short block) of code."""
from __future__ import annotations

import json
from typing import Callable, Dict, Optional, Tuple

from step_model.models import Step, StepType

from .locators import java_by, js_by, python_by, quote_double, quote_single
from .models import Target
from .urls import resolve_url

# pylint: disable=unused-argument

WAIT_TIMEOUT_MS = 10_000


class StepRenderer:
    """Renders steps for one target.

    Each hook returns ``None`` when the target has no idiom for the step, in
    which case the emitter falls back to a comment line.
    """

    language = "javascript"

    def render(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        hook = self._hooks().get(step.type)
        if hook is None:
            return None
        return hook(step, index, base_url)

    def _hooks(self) -> Dict[StepType, Callable[[Step, int, Optional[str]], Optional[str]]]:
        return {
            StepType.NAVIGATE: self.navigate,
            StepType.CLICK: self.click,
            StepType.FILL: self.fill,
            StepType.WAIT: self.wait,
            StepType.WAIT_FOR_PAGE_LOAD: self.wait_for_page_load,
            StepType.VERIFY_ELEMENT: self.verify_element,
            StepType.ASSERT: self.assert_condition,
            StepType.CUSTOM: self.custom,
            StepType.API_CALL: self.api_call,
        }

    def quote(self, text: str) -> str:
        return quote_double(text) if self.language == "java" else quote_single(text)

    def comment(self, text: str) -> str:
        prefix = "#" if self.language == "python" else "//"
        return f"{prefix} {text}"

    def navigate(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def click(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def fill(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def wait(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def wait_for_page_load(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def verify_element(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def assert_condition(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return None

    def custom(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return step.statement

    def api_call(self, step: Step, index: int, base_url: Optional[str]) -> Optional[str]:
        return self.comment(f"API Call: {step.http_method} {step.url or ''}")


class PlaywrightJsRenderer(StepRenderer):
    """@playwright/test for TypeScript and JavaScript."""

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"await page.goto({self.quote(resolve_url(step.url, base_url))})"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"await page.click({self.quote(step.selector)})"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"await page.fill({self.quote(step.selector)}, {self.quote(step.value)})"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        return f"await page.waitForSelector({self.quote(step.selector)})"

    def wait_for_page_load(self, step, index, base_url):
        return f"await page.waitForLoadState({self.quote(step.load_state)})"

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        return f"await expect(page.locator({self.quote(step.selector)})).toBeVisible()"

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"expect({step.statement}).toBeTruthy()"


class PlaywrightPythonRenderer(StepRenderer):
    """pytest-playwright sync API."""

    language = "python"

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"page.goto({self.quote(resolve_url(step.url, base_url))})"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"page.click({self.quote(step.selector)})"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"page.fill({self.quote(step.selector)}, {self.quote(step.value)})"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        return f"page.wait_for_selector({self.quote(step.selector)})"

    def wait_for_page_load(self, step, index, base_url):
        return f"page.wait_for_load_state({self.quote(step.load_state)})"

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        return f"expect(page.locator({self.quote(step.selector)})).to_be_visible()"

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"assert {step.statement}"


class PlaywrightJavaRenderer(StepRenderer):
    """Playwright for Java with JUnit assertions."""

    language = "java"

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"page.navigate({self.quote(resolve_url(step.url, base_url))});"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"page.click({self.quote(step.selector)});"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"page.fill({self.quote(step.selector)}, {self.quote(step.value)});"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        return f"page.waitForSelector({self.quote(step.selector)});"

    def wait_for_page_load(self, step, index, base_url):
        return f"page.waitForLoadState(LoadState.{step.load_state.upper()});"

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        return f"assertThat(page.locator({self.quote(step.selector)})).isVisible();"

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"assertTrue({step.statement});"


class SeleniumJsRenderer(StepRenderer):
    """selenium-webdriver with chai for TypeScript and JavaScript."""

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"await driver.get({self.quote(resolve_url(step.url, base_url))})"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"await driver.findElement({js_by(step.selector)}).click()"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"await driver.findElement({js_by(step.selector)}).sendKeys({self.quote(step.value)})"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        return f"await driver.wait(until.elementLocated({js_by(step.selector)}), {WAIT_TIMEOUT_MS})"

    def wait_for_page_load(self, step, index, base_url):
        return ("await driver.wait(async () => await driver.executeScript('return document.readyState') === "
                f"'complete', {WAIT_TIMEOUT_MS}) {self.comment(step.load_state)}")

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        name = binding_name(index)
        return (f"const {name} = await driver.findElement({js_by(step.selector)})\n"
                f"expect(await {name}.isDisplayed()).to.be.true")

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"expect({step.statement}).to.be.true"


class SeleniumPythonRenderer(StepRenderer):
    """Selenium Python bindings."""

    language = "python"

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"driver.get({self.quote(resolve_url(step.url, base_url))})"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"driver.find_element({python_by(step.selector)}).click()"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"driver.find_element({python_by(step.selector)}).send_keys({self.quote(step.value)})"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        seconds = WAIT_TIMEOUT_MS // 1000
        return f"WebDriverWait(driver, {seconds}).until(EC.presence_of_element_located(({python_by(step.selector)})))"

    def wait_for_page_load(self, step, index, base_url):
        seconds = WAIT_TIMEOUT_MS // 1000
        return (f"WebDriverWait(driver, {seconds}).until("
                "lambda d: d.execute_script('return document.readyState') == 'complete')"
                f"  {self.comment(step.load_state)}")

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        name = binding_name(index)
        return (f"{name} = driver.find_element({python_by(step.selector)})\n"
                f"assert {name}.is_displayed()")

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"assert {step.statement}"


class SeleniumJavaRenderer(StepRenderer):
    """Selenium Java bindings with JUnit assertions."""

    language = "java"

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"driver.get({self.quote(resolve_url(step.url, base_url))});"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"driver.findElement({java_by(step.selector)}).click();"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"driver.findElement({java_by(step.selector)}).sendKeys({self.quote(step.value)});"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        seconds = WAIT_TIMEOUT_MS // 1000
        return (f"new WebDriverWait(driver, Duration.ofSeconds({seconds}))"
                f".until(ExpectedConditions.presenceOfElementLocated({java_by(step.selector)}));")

    def wait_for_page_load(self, step, index, base_url):
        seconds = WAIT_TIMEOUT_MS // 1000
        return (f"new WebDriverWait(driver, Duration.ofSeconds({seconds})).until(d -> "
                "((JavascriptExecutor) d).executeScript(\"return document.readyState\").equals(\"complete\"));"
                f" {self.comment(step.load_state)}")

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        name = binding_name(index)
        return (f"WebElement {name} = driver.findElement({java_by(step.selector)});\n"
                f"assertTrue({name}.isDisplayed());")

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"assertTrue({step.statement});"


class CypressRenderer(StepRenderer):
    """Cypress commands for TypeScript and JavaScript."""

    def navigate(self, step, index, base_url):
        if not step.url:
            return None
        return f"cy.visit({self.quote(resolve_url(step.url, base_url))})"

    def click(self, step, index, base_url):
        if not step.selector:
            return None
        return f"cy.get({self.quote(step.selector)}).click()"

    def fill(self, step, index, base_url):
        if not step.selector or step.value is None:
            return None
        return f"cy.get({self.quote(step.selector)}).type({self.quote(step.value)})"

    def wait(self, step, index, base_url):
        if not step.selector:
            return None
        return f"cy.get({self.quote(step.selector)}, {{ timeout: {WAIT_TIMEOUT_MS} }})"

    def wait_for_page_load(self, step, index, base_url):
        return f"cy.wait(1000) // Wait for page load ({step.load_state})"

    def verify_element(self, step, index, base_url):
        if not step.selector:
            return None
        return f"cy.get({self.quote(step.selector)}).should('be.visible')"

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        return f"expect({step.statement}).to.be.true"

    def api_call(self, step, index, base_url):
        if not step.url:
            return None
        parts = [f"method: {self.quote(step.http_method)}", f"url: {self.quote(resolve_url(step.url, base_url))}"]
        headers, body = decode_payload(step)
        if headers:
            parts.append(f"headers: {json.dumps(headers)}")
        if body is not None:
            parts.append(f"body: {json.dumps(body)}")
        return f"cy.request({{ {', '.join(parts)} }}).its('status').should('eq', {step.status_code})"


class UnitJsRenderer(StepRenderer):
    """Unit test runners (jest, mocha, vitest) that have no browser driver."""

    def __init__(self, expect_style: str = "jest", native_http: bool = False) -> None:
        self.expect_style = expect_style
        self.native_http = native_http

    def assert_condition(self, step, index, base_url):
        if not step.statement:
            return None
        if self.expect_style == "chai":
            return f"expect({step.statement}).to.be.true"
        return f"expect({step.statement}).toBe(true)"

    def api_call(self, step, index, base_url):
        if not self.native_http or not step.url:
            return super().api_call(step, index, base_url)
        name = f"response{index}"
        headers, body = decode_payload(step)
        lines = [
            f"const {name} = await fetch({self.quote(resolve_url(step.url, base_url))}, {{",
            f"  method: {self.quote(step.http_method)},",
        ]
        if headers:
            lines.append(f"  headers: {json.dumps(headers)},")
        if body is not None:
            lines.append(f"  body: JSON.stringify({json.dumps(body)}),")
        lines.append("})")
        lines.append(f"expect({name}.status).toBe({step.status_code})")
        return "\n".join(lines)


def binding_name(index: int) -> str:
    """Local variable name for the step at ``index``; unique within one emission."""
    return f"element{index}"


def decode_payload(step: Step) -> Tuple[dict, object]:
    headers = json.loads(step.headers) if step.headers else {}
    body = json.loads(step.body) if step.body else None
    return headers, body


_PLAYWRIGHT_JS = PlaywrightJsRenderer()
_SELENIUM_JS = SeleniumJsRenderer()
_CYPRESS = CypressRenderer()

RENDERERS: Dict[Tuple[str, str], StepRenderer] = {
    ("playwright", "typescript"): _PLAYWRIGHT_JS,
    ("playwright", "javascript"): _PLAYWRIGHT_JS,
    ("playwright", "python"): PlaywrightPythonRenderer(),
    ("playwright", "java"): PlaywrightJavaRenderer(),
    ("selenium", "typescript"): _SELENIUM_JS,
    ("selenium", "javascript"): _SELENIUM_JS,
    ("selenium", "python"): SeleniumPythonRenderer(),
    ("selenium", "java"): SeleniumJavaRenderer(),
    ("cypress", "typescript"): _CYPRESS,
    ("cypress", "javascript"): _CYPRESS,
    ("jest", "typescript"): UnitJsRenderer(native_http=True),
    ("jest", "javascript"): UnitJsRenderer(native_http=True),
    ("vitest", "typescript"): UnitJsRenderer(native_http=True),
    ("vitest", "javascript"): UnitJsRenderer(native_http=True),
    ("mocha", "typescript"): UnitJsRenderer(expect_style="chai"),
    ("mocha", "javascript"): UnitJsRenderer(expect_style="chai"),
}

BROWSER_TARGETS = tuple(
    Target(framework, language) for framework, language in RENDERERS if framework in ("playwright", "selenium", "cypress"))


def renderer_for(target: Target) -> Optional[StepRenderer]:
    return RENDERERS.get((target.framework, target.language))
