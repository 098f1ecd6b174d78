"""Tests for genpatch.locator module."""

import pytest

from genpatch.locator import (
    BraceCountingLocator,
    LiteralAwareLocator,
    body_indent,
    declares_method,
    detect_indent_unit,
    find_block_end,
    find_class,
    find_method,
    find_opening_tag,
    get_locator,
    is_balanced,
    mask_literals,
    parameter_names,
)

RAW = BraceCountingLocator()
AWARE = LiteralAwareLocator()


# ---------------------------------------------------------------------------
# Block boundaries
# ---------------------------------------------------------------------------

def test_find_block_end_nested() -> None:
    text = "a { b { c } d } e"
    assert find_block_end(text, 2, RAW) == text.index("} e")
    assert find_block_end(text, 2, AWARE) == text.index("} e")


def test_find_block_end_unterminated() -> None:
    assert find_block_end("fun x() { if (a) {", 8) is None


def test_find_block_end_requires_brace_at_index() -> None:
    assert find_block_end("abc", 0) is None
    assert find_block_end("{}", 5) is None


def test_raw_counts_braces_in_strings() -> None:
    text = 'fun a() {\n  val s = "}"\n}\n'
    assert RAW.find_block_end(text, text.index("{")) == text.index('"}"') + 1
    assert AWARE.find_block_end(text, text.index("{")) == text.rindex("}")


def test_literal_aware_skips_comments_and_templates() -> None:
    text = (
        "fun a() {\n"
        "  // } not code\n"
        "  /* { nested /* } */ still comment { */\n"
        '  val t = "${x} {"\n'
        "  val c = '{'\n"
        '  val raw = """ } """\n'
        "}\n"
    )
    assert AWARE.find_block_end(text, text.index("{")) == text.rindex("}")
    assert AWARE.is_balanced(text)
    assert not RAW.is_balanced(text)


def test_is_balanced() -> None:
    assert is_balanced("class A { fun b() {} }")
    assert not is_balanced("class A { fun b() { }")
    assert not is_balanced("} {")


def test_last_top_level_close() -> None:
    text = "class A {\n}\nclass B { fun c() {} }\n"
    assert AWARE.last_top_level_close(text) == text.rindex("}")


def test_get_locator() -> None:
    assert get_locator().name == "literal-aware"
    assert get_locator("RAW").name == "raw"
    with pytest.raises(ValueError):
        get_locator("ast")


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

def test_find_method_with_body() -> None:
    text = (
        "class MainActivity : TauriActivity() {\n"
        "    override fun onActivityResult(requestCode: Int, resultCode: Int, data: Intent?) {\n"
        "        super.onActivityResult(requestCode, resultCode, data)\n"
        "    }\n"
        "}\n"
    )
    decl = find_method(text, "onActivityResult")
    assert decl is not None
    assert decl.indent == "    "
    assert decl.has_body
    assert decl.param_names == ["requestCode", "resultCode", "data"]
    assert text[decl.close_brace] == "}"
    assert body_indent(text, decl, "    ") == "        "


def test_find_method_expression_body_has_no_body() -> None:
    text = "  override fun onDestroy() = super.onDestroy()\n"
    decl = find_method(text, "onDestroy")
    assert decl is not None
    assert not decl.has_body


def test_find_method_with_annotation_and_return_type() -> None:
    text = '  @Suppress("X") fun genpatchPickFolder(timeoutMs: Long): String {\n    return ""\n  }\n'
    decl = find_method(text, "genpatchPickFolder")
    assert decl is not None
    assert decl.has_body


def test_find_method_missing() -> None:
    assert find_method("class A {}", "onDestroy") is None
    assert not declares_method("class A {}", "onDestroy")
    assert declares_method("fun onDestroy ()", "onDestroy")


def test_parameter_names() -> None:
    assert parameter_names("requestCode: Int, permissions: Array<out String>, grantResults: IntArray") == [
        "requestCode", "permissions", "grantResults",
    ]
    assert parameter_names("vararg xs: Int, @NonNull m: Map<String, Int>") == ["xs", "m"]
    assert parameter_names("") == []


def test_find_class_without_body() -> None:
    text = "package x\n\nclass MainActivity : TauriActivity()\n"
    cls = find_class(text, "MainActivity")
    assert cls is not None
    assert not cls.has_body
    assert text[cls.start:cls.line_end] == "class MainActivity : TauriActivity()"


def test_find_class_with_body_on_next_line() -> None:
    text = "class MainActivity : TauriActivity()\n{\n}\n"
    cls = find_class(text, "MainActivity")
    assert cls is not None
    assert cls.has_body
    assert cls.close_brace == text.rindex("}")


def test_find_class_ignores_other_names() -> None:
    assert find_class("class MainActivityHelper {}", "MainActivity") is None


def test_find_opening_tag_spans_attributes() -> None:
    text = '<?xml version="1.0"?>\n<manifest\n  xmlns:android="x"\n  package="p">\n</manifest>\n'
    m = find_opening_tag(text, "manifest")
    assert m is not None
    assert m.group(0).endswith('package="p">')


def test_detect_indent_unit() -> None:
    assert detect_indent_unit("a {\n  b {\n    c\n  }\n}\n") == "  "
    assert detect_indent_unit("a {\n    b\n}\n") == "    "
    assert detect_indent_unit("a {\n\tb\n}\n") == "\t"
    assert detect_indent_unit("a\n") == "    "


def test_find_class_with_blank_lines_before_body() -> None:
    text = "class MainActivity : TauriActivity()\n\n  \n{\n  fun a() {}\n}\n"
    cls = find_class(text, "MainActivity")
    assert cls is not None
    assert cls.has_body
    assert text[cls.open_brace] == "{"
    assert cls.close_brace == text.rindex("}")


# ---------------------------------------------------------------------------
# Comments, strings and class scope
# ---------------------------------------------------------------------------

def test_mask_literals_keeps_offsets() -> None:
    text = 'val a = "x{y}" // fun b() {\n/* c { */ val d = \'}\'\n'
    masked = mask_literals(text)
    assert len(masked) == len(text)
    assert masked.count("\n") == 2
    assert "{" not in masked and "}" not in masked
    assert masked.index("val d") == text.index("val d")


def test_declarations_in_comments_and_strings_ignored() -> None:
    text = (
        "class MainActivity {\n"
        "  // override fun onActivityResult(requestCode: Int) {\n"
        "  /*\n"
        "  override fun onDestroy() {\n"
        "  */\n"
        '  val s = "fun onPause() {"\n'
        "}\n"
    )
    for name in ("onActivityResult", "onDestroy", "onPause"):
        assert find_method(text, name) is None
        assert not declares_method(text, name)


def test_find_method_scoped_to_class_members() -> None:
    text = (
        "class Helper {\n"
        "  fun onDestroy() {\n"
        "  }\n"
        "}\n"
        "class MainActivity : TauriActivity() {\n"
        "  val observer = object : Observer {\n"
        "    override fun onDestroy() {\n"
        "    }\n"
        "  }\n"
        "  override fun onDestroy() {\n"
        "    super.onDestroy()\n"
        "  }\n"
        "}\n"
    )
    cls = find_class(text, "MainActivity")
    decl = find_method(text, "onDestroy", scope=cls)
    assert decl is not None
    assert decl.start == text.index("  override fun onDestroy() {\n    super")
    assert decl.has_body

    # without a scope the first declaration in the file wins
    assert find_method(text, "onDestroy").start == text.index("  fun onDestroy")

    helper = find_class(text, "Helper")
    assert declares_method(text, "onDestroy", scope=helper)
    assert not declares_method(text, "onCreate", scope=cls)


def test_scoped_search_without_members() -> None:
    text = "class Helper {\n  fun onDestroy() {}\n}\nclass MainActivity : TauriActivity() {\n}\n"
    cls = find_class(text, "MainActivity")
    assert find_method(text, "onDestroy", scope=cls) is None
    assert not declares_method(text, "onDestroy", scope=cls)
