"""Evaluation of built-in predicates such as comparisons and pattern matches."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from mangle.constants import Constant, ConstantError, ConstantType
from mangle.decl import ArgMode, Mode
from mangle.terms import (
    ApplyFn,
    Atom,
    BaseTerm,
    ConstSubstList,
    PredicateSym,
    SubstMap,
    Variable,
    WILDCARD_SYMBOL,
)

_IN = ArgMode.INPUT
_OUT = ArgMode.OUTPUT

MATCH_PREFIX = PredicateSym(":match_prefix", 2)
STARTS_WITH = PredicateSym(":string:starts_with", 2)
ENDS_WITH = PredicateSym(":string:ends_with", 2)
CONTAINS = PredicateSym(":string:contains", 2)
LT = PredicateSym(":lt", 2)
LE = PredicateSym(":le", 2)
GT = PredicateSym(":gt", 2)
GE = PredicateSym(":ge", 2)
LIST_MEMBER = PredicateSym(":list:member", 2)
WITHIN_DISTANCE = PredicateSym(":within_distance", 3)
MATCH_PAIR = PredicateSym(":match_pair", 3)
MATCH_CONS = PredicateSym(":match_cons", 3)
MATCH_NIL = PredicateSym(":match_nil", 1)
MATCH_FIELD = PredicateSym(":match_field", 3)
MATCH_ENTRY = PredicateSym(":match_entry", 3)

PREDICATES: Dict[PredicateSym, Mode] = {
    MATCH_PREFIX: Mode([_IN, _IN]),
    STARTS_WITH: Mode([_IN, _IN]),
    ENDS_WITH: Mode([_IN, _IN]),
    CONTAINS: Mode([_IN, _IN]),
    LT: Mode([_IN, _IN]),
    LE: Mode([_IN, _IN]),
    GT: Mode([_IN, _IN]),
    GE: Mode([_IN, _IN]),
    LIST_MEMBER: Mode([_OUT, _IN]),
    WITHIN_DISTANCE: Mode([_IN, _IN, _IN]),
    MATCH_PAIR: Mode([_IN, _OUT, _OUT]),
    MATCH_CONS: Mode([_IN, _OUT, _OUT]),
    MATCH_NIL: Mode([_IN]),
    MATCH_FIELD: Mode([_IN, _IN, _OUT]),
    MATCH_ENTRY: Mode([_IN, _IN, _OUT]),
}

_COMPARISONS = {
    LT.symbol: ("<", lambda a, b: a < b),
    LE.symbol: ("<=", lambda a, b: a <= b),
    GT.symbol: (">", lambda a, b: a > b),
    GE.symbol: (">=", lambda a, b: a >= b),
}

_STRING_TESTS = {
    STARTS_WITH.symbol: str.startswith,
    ENDS_WITH.symbol: str.endswith,
    CONTAINS.symbol: lambda s, p: p in s,
}

_MATCH_SYMBOLS = {
    MATCH_PREFIX.symbol,
    MATCH_PAIR.symbol,
    MATCH_CONS.symbol,
    MATCH_NIL.symbol,
    MATCH_ENTRY.symbol,
    MATCH_FIELD.symbol,
    *_STRING_TESTS,
}


class BuiltinError(ValueError):
    """Raised when a built-in predicate is applied incorrectly."""


class _UnifyError(Exception):
    pass


def is_builtin_predicate(sym: PredicateSym) -> bool:
    """True if ``sym`` is one of the built-in predicates."""
    return sym in PREDICATES


def _lookup(subst, variable: Variable):
    if subst is None:
        return None
    return subst.get(variable)


def _resolve(term: BaseTerm, subst) -> BaseTerm:
    seen = set()
    while isinstance(term, Variable) and term not in seen:
        seen.add(term)
        bound = _lookup(subst, term)
        if bound is None:
            return term
        term = bound
    if isinstance(term, ApplyFn):
        raise BuiltinError(f"cannot evaluate function application {term}")
    return term


def _as_dict(subst) -> Dict[Variable, BaseTerm]:
    if subst is None:
        return {}
    if isinstance(subst, dict):
        return dict(subst)
    if isinstance(subst, ConstSubstList):
        result: Dict[Variable, BaseTerm] = {}
        for v, c in subst:
            result.setdefault(v, c)
        return result
    raise BuiltinError(f"unsupported substitution {subst!r}")


def _unify_extend(lefts: Sequence[BaseTerm], rights: Sequence[BaseTerm], subst) -> SubstMap:
    bindings = SubstMap(_as_dict(subst))
    for left, right in zip(lefts, rights):
        if isinstance(left, Variable) and left.symbol == WILDCARD_SYMBOL:
            continue
        if isinstance(right, Variable) and right.symbol == WILDCARD_SYMBOL:
            continue
        lval = _resolve(left, bindings)
        rval = _resolve(right, bindings)
        if isinstance(lval, Variable):
            if lval != rval:
                bindings[lval] = rval
        elif isinstance(rval, Variable):
            bindings[rval] = lval
        elif lval != rval:
            raise _UnifyError(f"cannot unify {lval} and {rval}")
    return bindings


def _eval_constant(term: BaseTerm, subst) -> Constant:
    value = _resolve(term, subst)
    if not isinstance(value, Constant):
        raise BuiltinError(f"not a constant: {value} {type(value).__name__}")
    return value


def _number_values(args: Sequence[BaseTerm]) -> List[int]:
    nums = []
    for arg in args:
        if not isinstance(arg, Constant):
            raise BuiltinError(f"not a value {arg} ({type(arg).__name__})")
        if arg.type != ConstantType.NUMBER:
            raise BuiltinError(f"value {arg} ({arg.type.name}) is not a number")
        nums.append(arg.num_value)
    return nums


def decide(atom: Atom, subst) -> Tuple[bool, list]:
    """Evaluate a built-in atom under ``subst``.

    Returns whether the atom holds and the substitutions under which it does.
    """
    symbol = atom.predicate.symbol
    if symbol in _MATCH_SYMBOLS:
        ok, nsubst = _match(atom, subst)
        return (True, [nsubst]) if ok else (False, [])

    if symbol in _COMPARISONS:
        op, compare = _COMPARISONS[symbol]
        if len(atom.args) != 2:
            raise BuiltinError(
                f"wrong number of arguments for built-in predicate '{op}': "
                f"{[str(a) for a in atom.args]}"
            )
        left, right = _number_values(atom.args)
        return compare(left, right), [subst]

    if symbol == WITHIN_DISTANCE.symbol:
        if len(atom.args) != 3:
            raise BuiltinError(
                "wrong number of arguments for built-in predicate 'within_distance': "
                f"{[str(a) for a in atom.args]}"
            )
        left, right, distance = _number_values(atom.args)
        return abs(left - right) < distance, [subst]

    if symbol == LIST_MEMBER.symbol:
        return _list_member(atom, subst)

    raise BuiltinError(f"not a builtin predicate: {symbol}")


def _list_member(atom: Atom, subst) -> Tuple[bool, list]:
    if len(atom.args) != 2:
        raise BuiltinError(
            f"wrong number of arguments for built-in predicate ':list:member': "
            f"{[str(a) for a in atom.args]}"
        )
    lst = _eval_constant(atom.args[1], subst)
    member = atom.args[0]
    if isinstance(member, Variable) and subst is not None:
        member = _resolve(member, subst)
    if not isinstance(member, Variable):
        if lst.type != ConstantType.LIST:
            raise BuiltinError(f"value {lst} ({lst.type.name}) is not a list")
        return any(elem == member for elem in lst.list_values()), [subst]
    if lst.type != ConstantType.LIST:
        return False, []
    values = list(lst.list_values())
    if not values:
        return False, []
    try:
        return True, [_unify_extend([member], [elem], subst) for elem in values]
    except _UnifyError as err:
        raise BuiltinError(str(err)) from err


def _match(pattern: Atom, subst) -> Tuple[bool, object]:
    symbol = pattern.predicate.symbol
    args = pattern.args
    if not args:
        raise BuiltinError(f"wrong number of arguments for built-in predicate '{symbol}': []")
    scrutinee = _eval_constant(args[0], subst)

    def check_arity(n: int) -> None:
        if len(args) != n:
            raise BuiltinError(
                f"wrong number of arguments for built-in predicate '{symbol}': "
                f"{[str(a) for a in args]}"
            )

    if symbol == MATCH_PREFIX.symbol:
        check_arity(2)
        pat = args[1]
        if not isinstance(pat, Constant) or pat.type != ConstantType.NAME:
            raise BuiltinError(f"2nd arguments must be name constant for '{symbol}': {pattern}")
        if scrutinee.type != ConstantType.NAME:
            return False, None
        ok = scrutinee.symbol.startswith(pat.symbol) and len(scrutinee.symbol) > len(pat.symbol)
        return ok, subst

    if symbol in _STRING_TESTS:
        check_arity(2)
        pat = args[1]
        if not isinstance(pat, Constant) or pat.type != ConstantType.STRING:
            raise BuiltinError(f"2nd arguments must be string constant for '{symbol}': {pattern}")
        if scrutinee.type != ConstantType.STRING:
            return False, None
        return _STRING_TESTS[symbol](scrutinee.symbol, pat.symbol), subst

    if symbol in (MATCH_PAIR.symbol, MATCH_CONS.symbol):
        check_arity(3)
        left, right = args[1], args[2]
        if not isinstance(left, Variable) or not isinstance(right, Variable):
            raise BuiltinError(f"2nd and 3rd arguments must be variables for '{symbol}': {pattern}")
        try:
            if symbol == MATCH_PAIR.symbol:
                fst, snd = scrutinee.pair_value()
            else:
                fst, snd = scrutinee.cons_value()
        except ConstantError:
            return False, None
        try:
            return True, _unify_extend([left, right], [fst, snd], subst)
        except _UnifyError as err:
            raise BuiltinError(f"This should never happen for {pattern}") from err

    if symbol == MATCH_NIL.symbol:
        check_arity(1)
        return (True, subst) if scrutinee.is_list_nil() else (False, None)

    if symbol in (MATCH_ENTRY.symbol, MATCH_FIELD.symbol):
        check_arity(3)
        shape = ConstantType.MAP if symbol == MATCH_ENTRY.symbol else ConstantType.STRUCT
        if scrutinee.type != shape or scrutinee.fst is None:
            return False, None
        key_pattern = args[1]
        if not isinstance(key_pattern, Constant):
            raise BuiltinError(f"bad pattern {pattern}")
        items = scrutinee.map_items() if shape == ConstantType.MAP else scrutinee.struct_items()
        try:
            found = next((val for key, val in items if key == key_pattern), None)
        except ConstantError:
            return False, None
        if found is None:
            return False, None
        try:
            return True, _unify_extend([args[2]], [found], subst)
        except _UnifyError:
            return False, None

    raise BuiltinError(f"unexpected case: {symbol}")