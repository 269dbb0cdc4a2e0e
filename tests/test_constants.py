import pytest

from mangle.constants import (
    LIST_NIL,
    MAP_NIL,
    STRUCT_NIL,
    Constant,
    ConstantError,
    ConstantType,
    float64,
    format_float64,
    format_number,
    hash_bytes,
    list_cons,
    list_of,
    map_cons,
    map_of,
    name,
    number,
    pair,
    sort_index,
    string,
    struct_cons,
    struct_of,
)

FOO = name("/foo")
FOO_SAME = name("/foo")
BAR = name("/bar")
BAR_STR = string("bar")
BAZ_STR = string("baz")
NUM = number(-123)
FLOAT = float64(3.1415)
FOO_BAR_PAIR = pair(FOO, BAR_STR)
BAR_FOO_PAIR = pair(BAR_STR, FOO)
FOO_FOO_PAIR = pair(FOO, FOO)
FOO_BAR_LIST = list_of([FOO, BAR_STR])
BAR_FOO_LIST = list_of([BAR_STR, FOO])
FOO_FOO_LIST = list_of([FOO, FOO])
FOO_PAIR = pair(FOO, None)
FOO_LIST = list_of([FOO])
FOO_BAR_MAP = map_of({FOO: BAR_STR})
FOO_BAR_STRUCT = struct_of({FOO: BAR_STR})
MAP_EXAMPLE = map_of({BAR_STR: FOO, BAZ_STR: BAR})
MAP_EXAMPLE_SAME = map_of({BAZ_STR: BAR, BAR_STR: FOO_SAME})
MAP_EXAMPLE_OTHER = map_of({BAZ_STR: BAR})
STRUCT_EXAMPLE = struct_of({FOO: FOO, BAR: NUM})
STRUCT_EXAMPLE_SAME = struct_of([(FOO_SAME, FOO_SAME), (BAR, NUM)])
STRUCT_EXAMPLE_OTHER = struct_of({BAR: NUM})


@pytest.mark.parametrize(
    "c,rebuilt",
    [
        (FOO, name("/foo")),
        (string("foo"), string("foo")),
        (number(-123), number(-123)),
        (FLOAT, float64(3.1415)),
        (FOO_BAR_PAIR, pair(name("/foo"), string("bar"))),
        (FOO_BAR_LIST, list_of([name("/foo"), string("bar")])),
        (MAP_EXAMPLE, map_of({string("bar"): name("/foo"), string("baz"): name("/bar")})),
        (STRUCT_EXAMPLE, struct_of({name("/foo"): name("/foo"), name("/bar"): number(-123)})),
    ],
)
def test_self_equals(c, rebuilt):
    assert c == rebuilt
    assert c.hash_code() == rebuilt.hash_code()
    assert str(c) == str(rebuilt)


@pytest.mark.parametrize(
    "left,right,want",
    [
        (FOO_PAIR, FOO_LIST, False),
        (FOO_FOO_PAIR, FOO_FOO_LIST, False),
        (FOO_PAIR, FOO, False),
        (FOO_BAR_PAIR, FOO_BAR_MAP, False),
        (FOO_BAR_STRUCT, FOO_BAR_MAP, False),
        (FOO_BAR_LIST, FOO_BAR_STRUCT, False),
        (FOO_BAR_PAIR, FOO_BAR_PAIR, True),
        (FOO_BAR_PAIR, BAR_FOO_PAIR, False),
        (FOO_BAR_LIST, BAR_FOO_LIST, False),
        (FOO_BAR_LIST, FOO_BAR_LIST, True),
        (MAP_EXAMPLE, MAP_EXAMPLE_SAME, True),
        (MAP_EXAMPLE, MAP_EXAMPLE_OTHER, False),
        (MAP_EXAMPLE, MAP_NIL, False),
        (MAP_NIL, MAP_EXAMPLE, False),
        (MAP_NIL, MAP_NIL, True),
        (STRUCT_EXAMPLE, STRUCT_EXAMPLE_SAME, True),
        (STRUCT_EXAMPLE, STRUCT_EXAMPLE_OTHER, False),
        (STRUCT_EXAMPLE, STRUCT_NIL, False),
        (STRUCT_NIL, STRUCT_EXAMPLE, False),
    ],
)
def test_equals_structured(left, right, want):
    assert (left == right) is want
    assert (left.hash_code() == right.hash_code()) is want


@pytest.mark.parametrize(
    "left,right",
    [
        (FOO_BAR_PAIR, FOO_BAR_LIST),
        (FOO_BAR_PAIR, BAR_FOO_PAIR),
        (FOO_BAR_PAIR, FOO_FOO_PAIR),
        (FOO_BAR_LIST, FOO_BAR_PAIR),
        (FOO_BAR_LIST, BAR_FOO_LIST),
        (FOO_BAR_LIST, FOO_FOO_LIST),
        (FOO_BAR_LIST, LIST_NIL),
        (FLOAT, NUM),
        (LIST_NIL, FOO_BAR_LIST),
        (name("/foo"), name("/bar")),
        (name("/foo"), string("foo")),
    ],
)
def test_equals_negative(left, right):
    assert left != right


def test_sort_index():
    assert sort_index([FOO, BAR_STR, FOO_BAR_PAIR]) == [2, 1, 0]


def test_hash_bytes_pinned():
    assert hash_bytes(b"") == 0xCBF29CE484222325
    assert hash_bytes(b"a") == 0xAF63BD4C8601B7BE


def test_hash_values():
    assert FOO.hash_code() == hash_bytes(b"/foo")
    assert BAR_STR.hash_code() == hash_bytes(b"bar")
    assert NUM.hash_code() == (1 << 64) - 123
    assert float64(1.0).hash_code() == 0x3FF0000000000000


def test_hash_consistent_with_cons():
    assert list_of([FOO]).hash_code() == list_cons(FOO, LIST_NIL).hash_code()
    assert map_of({FOO: BAR_STR}) == map_cons(FOO, BAR_STR, MAP_NIL)
    assert struct_of({FOO: BAR_STR}) == struct_cons(FOO, BAR_STR, STRUCT_NIL)


def test_usable_as_dict_key():
    d = {FOO: 1}
    assert d[FOO_SAME] == 1


@pytest.mark.parametrize(
    "c,want",
    [
        (name("/foo"), "/foo"),
        (number(52), "52"),
        (float64(52.34), "52.34"),
        (FOO_BAR_PAIR, '</foo; "bar">'),
        (FOO_BAR_LIST, '[/foo, "bar"]'),
        (LIST_NIL, "[]"),
        (MAP_NIL, "fn:map()"),
        (STRUCT_NIL, "{}"),
        (FOO_BAR_MAP, '[/foo : "bar"]'),
        (FOO_BAR_STRUCT, '{/foo : "bar"}'),
        (string('a"b\\c'), '"a\\"b\\\\c"'),
        (string("a\nb"), "`a\nb`"),
        (float64(1.0), "1"),
        (float64(-0.0), "-0"),
        (float64(float("inf")), "+Inf"),
    ],
)
def test_string(c, want):
    assert str(c) == want


def test_format_helpers():
    assert format_number(-7) == "-7"
    assert format_float64(1e20) == "100000000000000000000"
    assert format_float64(0.5) == "0.5"


@pytest.mark.parametrize("symbol", ["/bar", "/bar/baz"])
def test_name_valid(symbol):
    c = name(symbol)
    assert c.name_value() == symbol
    assert c.type == ConstantType.NAME


@pytest.mark.parametrize("symbol", ["/", "/bar/", "//bar/", "bar", "", '/a"b'])
def test_name_invalid(symbol):
    with pytest.raises(ConstantError):
        name(symbol)


@pytest.mark.parametrize(
    "text",
    ["Lean down your ear upon the earth and listen.", 'hello world " \\\\ "'],
)
def test_string_constant(text):
    assert string(text).string_value() == text


def test_number_constant():
    assert number(-42).number_value() == -42


def test_float_constant():
    assert float64(3.1415).float64_value() == 3.1415


def test_wrong_kind_accessors():
    with pytest.raises(ConstantError):
        number(1).string_value()
    with pytest.raises(ConstantError):
        string("x").number_value()
    with pytest.raises(ConstantError):
        number(1).float64_value()
    with pytest.raises(ConstantError):
        FOO.pair_value()
    with pytest.raises(ConstantError):
        LIST_NIL.cons_value()
    with pytest.raises(ConstantError):
        FOO.list_values()
    with pytest.raises(ConstantError):
        FOO_BAR_LIST.map_items()
    with pytest.raises(ConstantError):
        FOO_BAR_MAP.struct_items()


def test_pair_constant():
    n = number(-200)
    s = string("bar")
    fst, snd = pair(n, s).pair_value()
    assert fst == n and snd == s


def test_cons_value():
    head, tail = list_of([number(1), number(2)]).cons_value()
    assert head == number(1)
    assert tail == list_of([number(2)])


def test_list_constant():
    elems = [number(-42), string("foo")]
    assert list(list_of(elems).list_values()) == elems


def test_map_items():
    items = dict(MAP_EXAMPLE.map_items())
    assert items == {BAR_STR: FOO, BAZ_STR: BAR}


def test_struct_items():
    items = dict(STRUCT_EXAMPLE.struct_items())
    assert items == {FOO: FOO, BAR: NUM}


def test_nil_predicates():
    assert LIST_NIL.is_list_nil() and not FOO_LIST.is_list_nil()
    assert MAP_NIL.is_map_nil() and not FOO_BAR_MAP.is_map_nil()
    assert STRUCT_NIL.is_struct_nil() and not FOO_BAR_STRUCT.is_struct_nil()


def test_apply_subst_returns_self():
    assert FOO.apply_subst({}) is FOO


def test_long_list_equality():
    big = list_of(number(i) for i in range(5000))
    same = list_of(number(i) for i in range(5000))
    assert big == same
    assert len(list(big.list_values())) == 5000


def test_constant_is_immutable():
    with pytest.raises(AttributeError):
        FOO.symbol = "/bar"
    assert isinstance(FOO, Constant) and FOO.symbol == "/foo"