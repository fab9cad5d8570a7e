"""Whole test file rendering on top of the step emitter."""
from __future__ import annotations

import re
import textwrap
from typing import List

from step_model.sequence import Structured

from .emitter import emit_lines
from .expected import format_expected_result
from .locators import quote_single
from .models import CaseDocument, GeneratedFile, Target

# pylint: disable=too-many-return-statements

_NON_WORD = re.compile(r"[^0-9a-zA-Z]+")

PYTHON_PLAYWRIGHT_IMPORTS = "import pytest\nfrom playwright.sync_api import Page, expect"
PYTHON_SELENIUM_IMPORTS = ("from selenium import webdriver\n"
                           "from selenium.webdriver.common.by import By\n"
                           "from selenium.webdriver.support.ui import WebDriverWait\n"
                           "from selenium.webdriver.support import expected_conditions as EC")
JAVA_SELENIUM_IMPORTS = ("import java.time.Duration;\n"
                         "import org.openqa.selenium.By;\n"
                         "import org.openqa.selenium.JavascriptExecutor;\n"
                         "import org.openqa.selenium.WebDriver;\n"
                         "import org.openqa.selenium.WebElement;\n"
                         "import org.openqa.selenium.chrome.ChromeDriver;\n"
                         "import org.openqa.selenium.support.ui.ExpectedConditions;\n"
                         "import org.openqa.selenium.support.ui.WebDriverWait;\n"
                         "import org.junit.Test;\n"
                         "import static org.junit.Assert.assertTrue;")
JAVA_PLAYWRIGHT_IMPORTS = ("import com.microsoft.playwright.*;\n"
                           "import com.microsoft.playwright.options.LoadState;\n"
                           "import org.junit.Test;\n"
                           "import static com.microsoft.playwright.assertions.PlaywrightAssertions.assertThat;\n"
                           "import static org.junit.Assert.assertTrue;")


def body_lines(document: CaseDocument, target: Target) -> List[str]:
    """Code lines for the test body, before indentation."""
    sequence = document.sequence
    if isinstance(sequence, Structured):
        rendered = emit_lines(sequence.steps, target, document.base_url)
    else:
        rendered = [line for line in sequence.lines if line.strip()]
    lines: List[str] = []
    for chunk in rendered:
        lines.extend(chunk.splitlines() or [""])
    return lines


def render_test_case(document: CaseDocument, target: Target) -> str:
    """Render a complete test for ``target``.

    Unknown targets produce a comment-only listing of the steps.
    """
    steps = body_lines(document, target)
    expected_text = _one_line(document.expected_result)
    expression = format_expected_result(document.expected_result, target.language)

    if target.language == "python":
        return _render_python(document, target, steps, expected_text, expression)
    if target.language == "java":
        return _render_java(document, target, steps, expected_text, expression)
    if target.language in ("typescript", "javascript"):
        return _render_js(document, target, steps, expected_text, expression)
    return _render_generic(document, target, steps, expected_text)


def build_test_file(document: CaseDocument, target: Target) -> GeneratedFile:
    """Render a test and wrap it as a downloadable file."""
    content = render_test_case(document, target)
    has_imports = "import " in content or "require(" in content
    imports = "" if has_imports else default_imports(target)
    if imports:
        content = f"{imports}\n\n{content}"
    return GeneratedFile(filename=f"{slugify(document.name)}.test.{target.extension}", content=content)


def default_imports(target: Target) -> str:
    framework, language = target.framework, target.language
    if framework == "playwright":
        if language == "python":
            return PYTHON_PLAYWRIGHT_IMPORTS
        if language == "java":
            return JAVA_PLAYWRIGHT_IMPORTS
        return "import { test, expect } from '@playwright/test'"
    if framework == "selenium":
        if language == "python":
            return PYTHON_SELENIUM_IMPORTS
        if language == "java":
            return JAVA_SELENIUM_IMPORTS
        if language == "typescript":
            return "import { Builder, By, until } from 'selenium-webdriver'\nimport { expect } from 'chai'"
        return "const { Builder, By, until } = require('selenium-webdriver');\nconst { expect } = require('chai');"
    if framework == "cypress":
        return "// Cypress commands are available globally"
    if framework == "jest":
        return "// Jest globals are available"
    if framework == "mocha":
        if language == "typescript":
            return "import { expect } from 'chai'"
        return "const { expect } = require('chai')"
    if framework == "vitest":
        return "import { describe, it, expect } from 'vitest'"
    return ""


def slugify(name: str) -> str:
    slug = _NON_WORD.sub("-", name).strip("-").lower()
    return slug or "test-case"


def python_identifier(name: str) -> str:
    ident = _NON_WORD.sub("_", name).strip("_").lower()
    return ident or "case"


def java_identifier(name: str) -> str:
    ident = "".join(part[:1].upper() + part[1:] for part in _NON_WORD.split(name) if part)
    if not ident or ident[0].isdigit():
        ident = f"Case{ident}"
    return ident


def _render_python(document, target, steps, expected_text, expression) -> str:
    docstring = _one_line(document.description).replace('"""', '\\"\\"\\"')
    name = python_identifier(document.name)
    if target.framework == "playwright":
        return (f"{PYTHON_PLAYWRIGHT_IMPORTS}\n\n\n"
                f"def test_{name}(page: Page):\n"
                f'    """{docstring}"""\n'
                f"{_indent(steps, 4)}"
                f"    # Expected: {expected_text}\n"
                f"    assert {expression}\n")
    if target.framework == "selenium":
        return (f"{PYTHON_SELENIUM_IMPORTS}\n\n\n"
                f"def test_{name}():\n"
                f'    """{docstring}"""\n'
                "    driver = webdriver.Chrome()\n"
                "    try:\n"
                f"{_indent(steps, 8)}"
                f"        # Expected: {expected_text}\n"
                f"        assert {expression}\n"
                "    finally:\n"
                "        driver.quit()\n")
    return (f"def test_{name}():\n"
            f'    """{docstring}"""\n'
            f"{_indent(steps, 4)}"
            f"    # Expected: {expected_text}\n"
            f"    assert {expression}\n")


def _render_java(document, target, steps, expected_text, expression) -> str:
    name = java_identifier(document.name)
    description = _one_line(document.description)
    if target.framework == "selenium":
        return (f"{JAVA_SELENIUM_IMPORTS}\n\n"
                f"public class {name}Test {{\n"
                "    @Test\n"
                f"    public void test{name}() {{\n"
                f"        // {description}\n"
                "        WebDriver driver = new ChromeDriver();\n"
                "        try {\n"
                f"{_indent(steps, 12)}"
                f"            // Expected: {expected_text}\n"
                f"            assertTrue({expression});\n"
                "        } finally {\n"
                "            driver.quit();\n"
                "        }\n"
                "    }\n"
                "}\n")
    if target.framework == "playwright":
        return (f"{JAVA_PLAYWRIGHT_IMPORTS}\n\n"
                f"public class {name}Test {{\n"
                "    @Test\n"
                f"    public void test{name}() {{\n"
                f"        // {description}\n"
                "        try (Playwright playwright = Playwright.create()) {\n"
                "            Browser browser = playwright.chromium().launch();\n"
                "            Page page = browser.newPage();\n"
                f"{_indent(steps, 12)}"
                f"            // Expected: {expected_text}\n"
                f"            assertTrue({expression});\n"
                "        }\n"
                "    }\n"
                "}\n")
    return ("@Test\n"
            f"public void test{name}() {{\n"
            f"    // {description}\n"
            f"{_indent(steps, 4)}"
            f"    // Expected: {expected_text}\n"
            f"    assertTrue({expression});\n"
            "}\n")


def _render_js(document, target, steps, expected_text, expression) -> str:
    name = quote_single(_one_line(document.name))
    description = quote_single(_one_line(document.description)[:200])
    framework = target.framework
    if framework == "playwright":
        return ("import { test, expect } from '@playwright/test'\n\n"
                f"test({description}, async ({{ page }}) => {{\n"
                f"{_indent(steps, 2)}"
                f"  // Expected: {expected_text}\n"
                f"  expect({expression}).toBeTruthy()\n"
                "})\n")
    if framework == "selenium":
        imports = default_imports(target)
        return (f"{imports}\n\n"
                f"describe({name}, () => {{\n"
                f"  it({description}, async () => {{\n"
                "    const driver = await new Builder().forBrowser('chrome').build()\n"
                "    try {\n"
                f"{_indent(steps, 6)}"
                f"      // Expected: {expected_text}\n"
                f"      expect({expression}).to.be.true\n"
                "    } finally {\n"
                "      await driver.quit()\n"
                "    }\n"
                "  })\n"
                "})\n")
    if framework in ("cypress", "mocha"):
        return (f"describe({name}, () => {{\n"
                f"  it({description}, () => {{\n"
                f"{_indent(steps, 4)}"
                f"    // Expected: {expected_text}\n"
                f"    expect({expression}).to.be.true\n"
                "  })\n"
                "})\n")
    if framework == "jest":
        return (f"describe({name}, () => {{\n"
                f"  it({description}, async () => {{\n"
                f"{_indent(steps, 4)}"
                f"    // Expected: {expected_text}\n"
                "    // Note: assertions are handled within steps for API calls\n"
                f"    expect({expression}).toBe(true)\n"
                "  })\n"
                "})\n")
    if framework == "vitest":
        return ("import { describe, it, expect } from 'vitest'\n\n"
                f"describe({name}, () => {{\n"
                f"  it({description}, async () => {{\n"
                f"{_indent(steps, 4)}"
                f"    // Expected: {expected_text}\n"
                f"    expect({expression}).toBe(true)\n"
                "  })\n"
                "})\n")
    return _render_generic(document, target, steps, expected_text)


def _render_generic(document, target, steps, expected_text) -> str:
    prefix = target.comment_prefix
    lines = [f"{prefix} {_one_line(document.name)}", f"{prefix} {_one_line(document.description)}"]
    lines.extend(f"{prefix} {line}" if line and not line.startswith(prefix) else line for line in steps)
    lines.append(f"{prefix} Expected: {expected_text}")
    return "\n".join(lines) + "\n"


def _indent(lines: List[str], width: int) -> str:
    if not lines:
        return ""
    return textwrap.indent("\n".join(lines), " " * width) + "\n"


def _one_line(text: str) -> str:
    return " ".join((text or "").split())
