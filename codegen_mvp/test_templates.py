"""Tests for whole test file rendering."""
from __future__ import annotations

from codegen_mvp.cli import load_document, main
from codegen_mvp.models import CaseDocument, Target
from codegen_mvp.templates import build_test_file, render_test_case, slugify
from step_model.sequence import Opaque, dump_sequence, parse_steps

BASE = "http://localhost:3000"


def structured_document(expected: str = "User lands on the dashboard") -> CaseDocument:
    steps = parse_steps([
        {"id": "1", "type": "navigate", "url": "/login"},
        {"id": "2", "type": "click", "selector": "#submit"},
    ])
    return CaseDocument.from_dict({
        "name": "Login works!",
        "description": "Submitting the form logs the user in",
        "steps": dump_sequence(steps, ["await page.goto('/stale')"]),
        "expectedResult": expected,
    }, base_url=BASE)


def test_structured_steps_are_re_emitted_for_the_target():
    content = render_test_case(structured_document(), Target("playwright", "python"))

    assert "def test_login_works(page: Page):" in content
    assert "    page.goto('http://localhost:3000/login')" in content
    assert "    page.click('#submit')" in content
    assert "/stale" not in content
    assert "    # Expected: User lands on the dashboard" in content
    assert "    assert True" in content


def test_code_like_expected_result_is_embedded():
    content = render_test_case(structured_document("page.url().includes('/home')"), Target("playwright", "typescript"))
    assert "expect(page.url().includes('/home')).toBeTruthy()" in content


def test_opaque_lines_are_used_verbatim():
    document = CaseDocument(name="Legacy", sequence=Opaque(lines=("cy.visit('/')", "  ", "cy.get('#a').click()")))
    content = render_test_case(document, Target("cypress", "javascript"))

    assert "    cy.visit('/')\n    cy.get('#a').click()\n" in content
    assert content.startswith("describe('Legacy', () => {")


def test_selenium_java_class_template():
    content = render_test_case(structured_document(), Target("selenium", "java"))
    assert "public class LoginWorksTest {" in content
    assert 'driver.findElement(By.id("submit")).click();' in content
    assert "assertTrue(true);" in content


def test_build_test_file_adds_imports_and_slug():
    generated = build_test_file(structured_document(), Target("jest", "typescript"))

    assert generated.filename == "login-works.test.ts"
    assert generated.content.startswith("// Jest globals are available\n\n")


def test_build_test_file_keeps_template_imports():
    generated = build_test_file(structured_document(), Target("playwright", "typescript"))
    assert generated.content.count("import { test, expect } from '@playwright/test'") == 1


def test_unknown_target_renders_comment_listing():
    content = render_test_case(structured_document(), Target("robot", "ruby"))
    assert content.splitlines()[0] == "// Login works!"
    assert "// Expected: User lands on the dashboard" in content


def test_slugify_fallback():
    assert slugify("!!!") == "test-case"


def test_load_document_accepts_bare_step_array():
    document = load_document([{"id": "1", "type": "navigate", "url": "/"}], BASE)
    assert document.base_url == BASE
    assert document.sequence.steps[0].url == "/"


def test_cli_prints_step_code(tmp_path, capsys):
    steps_file = tmp_path / "steps.json"
    steps_file.write_text('[{"id": "1", "type": "click", "selector": ".go"}]', encoding="utf-8")

    exit_code = main(["--input", str(steps_file), "--framework", "selenium", "--language", "javascript"])

    assert exit_code == 0
    assert "await driver.findElement(By.className('go')).click()" in capsys.readouterr().out


def test_cli_strict_rejects_malformed_steps(tmp_path):
    steps_file = tmp_path / "steps.json"
    steps_file.write_text('[{"id": "1", "type": "click"}]', encoding="utf-8")

    assert main(["--input", str(steps_file), "--strict"]) == 1


def test_cli_writes_test_file(tmp_path):
    case_file = tmp_path / "case.json"
    case_file.write_text('{"name": "Smoke", "steps": ["await page.goto(\'/\')"]}', encoding="utf-8")

    assert main(["--input", str(case_file), "--output", str(tmp_path / "out")]) == 0
    assert (tmp_path / "out" / "smoke.test.ts").read_text(encoding="utf-8").startswith(
        "import { test, expect } from '@playwright/test'")
