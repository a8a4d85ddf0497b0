"""
Unit tests for template filters, the sanitizer and data adapters
"""
import pytest

from pysite.templating import (AdapterConflictError, AdapterRegistry, BUILTIN_FILTERS, FilterError,
                               FilterRegistry, MappingAdapter, NoopSanitizer, Sanitizer, make_sanitizer)


def apply(name, value, *args):
    return BUILTIN_FILTERS[name](value, type(value), list(args), {})


@pytest.mark.unit
class TestStringFilters:
    """Test string filters"""

    def test_case(self):
        assert apply("upcase", "abc") == "ABC"
        assert apply("downcase", "ABC") == "abc"
        assert apply("capitalize", "hello world") == "Hello world"

    def test_non_strings_pass_through(self):
        assert apply("upcase", 5) == 5
        assert apply("trim", ["a "]) == ["a "]

    def test_trim_and_strip(self):
        assert apply("trim", "  x  ") == "x"
        assert apply("strip", "<p>Hi <b>there</b></p>") == "Hi there"

    def test_split(self):
        assert apply("split", "a, b,c", ",") == ["a", "b", "c"]
        assert apply("split", "a b  c") == "a b  c"

    def test_replace_and_remove(self):
        assert apply("replace", "a-b-c", "-", "+") == "a+b+c"
        assert apply("remove", "a-b-c", "-") == "abc"
        with pytest.raises(FilterError):
            apply("replace", "abc", "a")

    def test_append_prepend(self):
        assert apply("append", "file", ".txt") == "file.txt"
        assert apply("prepend", "world", "hello ") == "hello world"
        assert apply("append", 3, "px") == "3px"

    def test_truncate(self):
        assert apply("truncate", "abcdef", 3) == "abc..."
        assert apply("truncate", "abc", 3) == "abc"
        assert apply("truncate", "abcdef", 2, "!") == "ab!"
        with pytest.raises(FilterError):
            apply("truncate", "abc", 0)
        with pytest.raises(FilterError):
            apply("truncate", "abc", "x")

    def test_escape(self):
        assert apply("escape", '<a href="x">') == "&lt;a href=&quot;x&quot;&gt;"


@pytest.mark.unit
class TestCollectionFilters:
    """Test collection filters"""

    def test_join(self):
        assert apply("join", ["a", "b"], ", ") == "a, b"
        assert apply("join", [1, 2]) == "12"

    def test_slice(self):
        assert apply("slice", "abcdef", 2) == "cdef"
        assert apply("slice", [1, 2, 3, 4], 1, 3) == [2, 3]
        assert apply("slice", "abc", 2, 10) == "c"

    @pytest.mark.parametrize("args,expected", [
        ((2, 100), "llo"),
        ((-3, 2), "He"),
        ((4, 1), "ell"),
        ((5,), ""),
        ((9, 100), ""),
        ((0, 0), ""),
    ])
    def test_slice_clamps_bounds(self, args, expected):
        assert apply("slice", "Hello", *args) == expected

    def test_slice_list_out_of_range(self):
        assert apply("slice", [1, 2, 3], 1, 50) == [2, 3]
        assert apply("slice", [1, 2, 3], 7) == []

    def test_contains(self):
        assert apply("contains", "team", "ea") is True
        assert apply("contains", ["a", "b"], "b") is True
        assert apply("contains", [1, 2], "2") is True
        assert apply("contains", {"k": 1}, "k") is True
        assert apply("contains", None, "x") is False

    def test_size_first_last_reverse(self):
        assert apply("size", [1, 2, 3]) == 3
        assert apply("size", "ab") == 2
        assert apply("size", 7) == 0
        assert apply("first", [1, 2]) == 1
        assert apply("last", "xyz") == "z"
        assert apply("first", []) is None
        assert apply("reverse", [1, 2, 3]) == [3, 2, 1]
        assert apply("reverse", "abc") == "cba"

    def test_default(self):
        assert apply("default", "", "fallback") == "fallback"
        assert apply("default", None, "fallback") == "fallback"
        assert apply("default", "set", "fallback") == "set"

    def test_to_json(self):
        assert apply("toJSON", {"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}'


@pytest.mark.unit
class TestFilterRegistry:
    """Test FilterRegistry class"""

    def test_builtins_registered(self):
        registry = FilterRegistry()
        assert "upcase" in registry
        assert set(BUILTIN_FILTERS) <= set(registry.names())

    def test_without_builtins(self):
        assert FilterRegistry(include_builtins=False).names() == []

    def test_register_override(self):
        registry = FilterRegistry()
        registry.register("upcase", lambda value, value_type, args, context: "custom")
        assert registry.get("upcase")("x", str, [], {}) == "custom"

    def test_register_requires_callable(self):
        with pytest.raises(TypeError):
            FilterRegistry().register("bad", "not callable")


@pytest.mark.unit
class TestSanitizer:
    """Test sanitizers"""

    def test_strips_disallowed_markup(self):
        cleaned = Sanitizer()('<img src="x.png" onerror="steal()"><a href="javascript:bad()">x</a>')
        assert "onerror" not in cleaned
        assert "javascript:" not in cleaned
        assert '<img src="x.png">' in cleaned

    def test_keeps_safe_markup(self):
        assert Sanitizer()('<p><em>hi</em></p>') == "<p><em>hi</em></p>"

    def test_make_sanitizer(self):
        assert isinstance(make_sanitizer(False), NoopSanitizer)
        assert not make_sanitizer(False).enabled
        assert make_sanitizer(True, str.upper)("x") == "X"
        assert isinstance(make_sanitizer(), Sanitizer)


@pytest.mark.unit
class TestAdapterRegistry:
    """Test AdapterRegistry class"""

    def test_mapping_registered_as_adapter(self):
        registry = AdapterRegistry()
        registry.register("Conf", {"a": {"b": 1}})
        assert isinstance(registry.get("Conf"), MappingAdapter)
        assert registry.get("Conf").get("Conf", "a", "b") == (1, True)
        assert registry.get("Conf").get("Conf", "zzz") == (None, False)

    def test_parent_lookup_and_iteration(self):
        parent = AdapterRegistry()
        parent.register("Site", {})
        child = AdapterRegistry(parent=parent)
        child.register("Page", {})
        assert "Site" in child
        assert sorted(child) == ["Page", "Site"]
        assert len(child) == 2

    def test_conflict(self):
        registry = AdapterRegistry()
        registry.register("Site", {})
        with pytest.raises(AdapterConflictError) as exc_info:
            registry.register("Site", {})
        assert exc_info.value.prefix == "Site"

    def test_unregister(self):
        registry = AdapterRegistry()
        registry.register("Site", {})
        registry.unregister("Site")
        assert "Site" not in registry
        registry.register("Site", {})

    def test_invalid_adapter(self):
        registry = AdapterRegistry()
        with pytest.raises(ValueError):
            registry.register("", {})
        with pytest.raises(TypeError):
            registry.register("X", 42)
