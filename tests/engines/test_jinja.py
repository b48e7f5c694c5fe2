"""Tests for the Jinja2 engine, alone and driven by RecoveryDriver."""

import pytest

from tplheal.diagnostics import Diagnostic, Level
from tplheal.engines import get_engine, get_engine_class
from tplheal.engines.jinja import JinjaBase, JinjaEngine, JinjaEngineConfig
from tplheal.exceptions import InvalidFunctionName, TemplateFailure
from tplheal.healers import noop
from tplheal.recovery import RecoveryDriver

NAME = "input template"

# --- Fixtures ---


@pytest.fixture
def engine():
    return JinjaEngine()


@pytest.fixture
def driver(engine):
    return RecoveryDriver(engine)


# --- Engine ---


def test_config_defaults():
    config = JinjaEngineConfig()
    assert config.strict_undefined is True
    assert config.keep_trailing_newline is True


def test_engine_registered():
    assert get_engine_class("jinja") is JinjaEngine
    assert isinstance(get_engine({"engine_class": "jinja", "strict_undefined": False}), JinjaEngine)
    with pytest.raises(ValueError, match="Unknown engine type"):
        get_engine_class("mustache")


def test_parse_ok(engine):
    template = engine.parse("Hello {{ name }}", engine.new(NAME))
    assert engine.is_parsed(template)
    assert engine.name_of(template) == NAME
    assert engine.execute(template, {"name": "Bob"}) == "Hello Bob"


def test_parse_failure_follows_grammar(engine):
    with pytest.raises(TemplateFailure) as excinfo:
        engine.parse("ok\nHello {{ name|nope }}", engine.new(NAME))
    assert excinfo.value.message == f"template: {NAME}:2: No filter named 'nope'."


def test_execute_unparsed_base(engine):
    base = engine.new(NAME)
    with pytest.raises(TemplateFailure) as excinfo:
        engine.execute(base, {})
    assert engine.grammar.is_empty_template(excinfo.value.message, NAME)


def test_execute_reports_template_line(engine):
    template = engine.parse("line one\n{{ missing }}", engine.new(NAME))
    with pytest.raises(TemplateFailure) as excinfo:
        engine.execute(template, {})
    assert excinfo.value.message == f"template: {NAME}:2: 'missing' is undefined"


def test_execute_wraps_non_template_errors(engine):
    template = engine.parse("{{ 1 // n }}", engine.new(NAME))
    with pytest.raises(TemplateFailure) as excinfo:
        engine.execute(template, {"n": 0})
    assert excinfo.value.message.startswith(f"template: {NAME}:1: ZeroDivisionError")


def test_non_mapping_data_is_exposed_as_data(engine):
    template = engine.parse("{{ data|length }}", engine.new(NAME))
    assert engine.execute(template, [1, 2, 3]) == "3"


def test_with_functions_returns_new_base(engine):
    base = engine.new(NAME)
    stubbed = engine.with_functions(base, {"nope": noop})
    assert isinstance(stubbed, JinjaBase)
    assert stubbed.stubs == ("nope",)
    assert "nope" in stubbed.environment.filters
    assert "nope" in stubbed.environment.tests
    assert "nope" in stubbed.environment.globals
    assert "nope" not in base.environment.filters
    assert "nope" not in base.environment.globals
    template = engine.parse("{{ x|nope }}{{ nope() }}{{ x is nope }}", stubbed)
    assert engine.execute(template, {"x": 1}) == ""


@pytest.mark.parametrize("name", ["", "bad name", "1st", "a-b", "a..b"])
def test_with_functions_rejects_bad_names(engine, name):
    with pytest.raises(InvalidFunctionName):
        engine.with_functions(engine.new(NAME), {name: noop})


def test_with_functions_accepts_dotted_names(engine):
    stubbed = engine.with_functions(engine.new(NAME), {"ns.fmt": noop})
    assert "ns.fmt" in stubbed.environment.filters


def test_lenient_undefined():
    engine = JinjaEngine(strict_undefined=False)
    template = engine.parse("[{{ missing }}]", engine.new(NAME))
    assert engine.execute(template, {}) == "[]"


# --- Recovery ---


def test_recover_missing_filters(driver, engine):
    text = "{{ a|one }}\n{{ b|two }}"
    template, diagnostics = driver.recover(text, engine.new(NAME))
    assert engine.is_parsed(template)
    assert diagnostics == [
        Diagnostic(line=0, char=5, description="No filter named 'one'."),
        Diagnostic(line=1, char=5, description="No filter named 'two'."),
    ]


def test_recover_empty_print(driver, engine):
    text = "Hello {{ }}!\n{{ name }}"
    template, diagnostics = driver.recover(text, engine.new(NAME))
    assert engine.is_parsed(template)
    assert diagnostics == [
        Diagnostic(line=0, char=6, description="Expected an expression, got 'end of print statement'")
    ]
    assert driver.run_and_diagnose(template, {"name": "Bob"}) == ("Hello" + " " * 6 + "!\nBob", [])


def test_recover_reports_syntax_errors_before_missing_filters(driver, engine):
    """Jinja parses the whole template before it checks filters."""
    text = "{{ a|one }}\n{{ }}"
    template, diagnostics = driver.recover(text, engine.new(NAME))
    assert engine.is_parsed(template)
    assert [(d.line, d.char) for d in diagnostics] == [(1, 0), (0, 5)]


def test_recover_unhealable(driver, engine):
    base = engine.new(NAME)
    template, diagnostics = driver.recover("{% for x in y %}", base)
    assert template is base
    assert len(diagnostics) == 1
    assert diagnostics[0].level is Level.PARSE
    assert diagnostics[0].line == 0


def test_check_end_to_end(driver):
    text = "Hi {{ name|shout }}\n{{ }}\n{{ missing }}"
    result = driver.check(text, {"name": "Bob"})
    assert result.healed
    assert [(d.level, d.line) for d in result.diagnostics] == [
        (Level.PARSE, 1),
        (Level.PARSE, 0),
        (Level.EXEC, 2),
    ]
    assert result.diagnostics[-1].char == 3
    assert result.diagnostics[-1].description == "'missing' is undefined"


def test_check_with_user_functions(driver):
    result = driver.check("{{ name|shout }}", {"name": "Bob"}, ["shout", "not valid"])
    assert result.healed
    assert result.output == ""
    assert result.diagnostics == [Diagnostic.misunderstood('bad function name provided: "not valid"')]
