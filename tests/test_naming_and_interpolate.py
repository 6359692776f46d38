from studio.graphics.interpolate import find_tokens, format_value, interpolate
from studio.graphics.naming import component_class_name, kebab_case, pascal_case, tag_name


def test_kebab_case_style_keys():
    assert kebab_case("fontSize") == "font-size"
    assert kebab_case("backgroundColor") == "background-color"
    assert kebab_case("color") == "color"
    assert kebab_case("zIndex") == "z-index"


def test_class_and_tag_names():
    assert pascal_case("lower-third-demo") == "LowerThirdDemo"
    assert pascal_case("news__bug") == "NewsBug"
    assert component_class_name("lower-third-demo") == "LowerThirdDemoGraphic"
    assert tag_name("lower-third-demo") == "lower-third-demo-graphic"


def test_class_name_never_starts_with_digit():
    assert component_class_name("3d-title") == "_3dTitleGraphic"


def test_interpolate_replaces_known_tokens():
    assert interpolate("Hello {{name}}", {"name": "Alice"}) == "Hello Alice"
    assert interpolate("{{a}}-{{b}}-{{a}}", {"a": 1, "b": "x"}) == "1-x-1"


def test_interpolate_leaves_unknown_tokens():
    assert interpolate("Hello {{missing}}", {}) == "Hello {{missing}}"
    assert interpolate("{{name}}", {"name": None}) == "{{name}}"


def test_interpolate_only_word_tokens():
    assert interpolate("{{first name}}", {"first name": "x"}) == "{{first name}}"
    assert interpolate("{name}", {"name": "x"}) == "{name}"


def test_interpolate_empty_content():
    assert interpolate("", {"a": 1}) == ""
    assert interpolate(None, {"a": 1}) == ""


def test_format_value_matches_browser_strings():
    assert format_value(True) == "true"
    assert format_value(False) == "false"
    assert format_value(3.0) == "3"
    assert format_value(2.5) == "2.5"
    assert format_value(0) == "0"


def test_find_tokens_in_order_without_duplicates():
    assert find_tokens("{{b}} {{a}} {{b}}") == ["b", "a"]
    assert find_tokens("plain") == []
    assert find_tokens(None) == []
