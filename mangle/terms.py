"""Terms of the language: variables, atoms, function applications, clauses."""

from __future__ import annotations

import struct as _struct
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Protocol, Tuple, Union

from mangle.constants import Constant, hash_bytes

INTERNAL_PREDICATE_SUFFIX = "__tmp"
WILDCARD_SYMBOL = "_"


class Subst(Protocol):
    """A mapping from variables to base terms."""

    def get(self, variable: "Variable"):  # pragma: no cover - protocol
        ...


@dataclass(frozen=True, slots=True)
class Variable:
    """A variable, identified by its name."""

    symbol: str

    def __str__(self) -> str:
        return self.symbol

    def hash_code(self) -> int:
        """Return a 64-bit hash code."""
        return hash_term(self.symbol, [self])

    def apply_subst(self, subst: Optional[Subst]) -> "BaseTerm":
        """Return what this variable maps to, or the variable itself."""
        if subst is None:
            return self
        bound = subst.get(self)
        return self if bound is None else bound


@dataclass(frozen=True, slots=True)
class PredicateSym:
    """A predicate symbol with its arity."""

    symbol: str
    arity: int

    def is_internal_predicate(self) -> bool:
        """True if the symbol belongs to a generated predicate."""
        return self.symbol.endswith(INTERNAL_PREDICATE_SUFFIX)

    def is_builtin(self) -> bool:
        """True if this symbol names a built-in predicate."""
        return self.symbol.startswith(":")

    def __str__(self) -> str:
        params = ", ".join(f"A{i}" for i in range(self.arity))
        return f"{self.symbol}({params})"


TRUE_PREDICATE = PredicateSym("true", 0)
FALSE_PREDICATE = PredicateSym("false", 0)


@dataclass(frozen=True, slots=True)
class FunctionSym:
    """A function symbol (always with ``fn:`` prefix) and its arity; -1 means variadic."""

    symbol: str
    arity: int

    def __str__(self) -> str:
        params = ", ".join(f"V{i}" for i in range(self.arity))
        return f"{self.symbol}({params})"


@dataclass(frozen=True, eq=False, slots=True)
class ApplyFn:
    """A function application such as ``fn:max(X)``."""

    function: FunctionSym
    args: Tuple["BaseTerm", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))

    def __str__(self) -> str:
        return f"{self.function.symbol}({','.join(str(a) for a in self.args)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApplyFn):
            return NotImplemented
        return self.function.symbol == other.function.symbol and self.args == other.args

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return hash((self.function.symbol, self.args))

    def hash_code(self) -> int:
        """Return a 64-bit hash code."""
        return hash_term(str(self.function), self.args)

    def apply_subst(self, subst: Optional[Subst]) -> "ApplyFn":
        return ApplyFn(self.function, tuple(a.apply_subst(subst) for a in self.args))


BaseTerm = Union[Constant, Variable, ApplyFn]


@dataclass(frozen=True, slots=True)
class Atom:
    """A predicate symbol applied to base-term arguments, e.g. ``parent(A, B)``."""

    predicate: PredicateSym
    args: Tuple[BaseTerm, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))

    def __str__(self) -> str:
        return f"{self.predicate.symbol}({','.join(str(a) for a in self.args)})"

    def hash_code(self) -> int:
        """Return a 64-bit hash code."""
        return hash_term(self.predicate.symbol, self.args)

    def apply_subst(self, subst: Optional[Subst]) -> "Atom":
        return Atom(self.predicate, tuple(a.apply_subst(subst) for a in self.args))

    def is_ground(self) -> bool:
        """True if every argument is a constant."""
        return all(isinstance(a, Constant) for a in self.args)


@dataclass(frozen=True, slots=True)
class NegAtom:
    """A negated atom."""

    atom: Atom

    def __str__(self) -> str:
        return f"!{self.atom}"

    def apply_subst(self, subst: Optional[Subst]) -> "NegAtom":
        return NegAtom(self.atom.apply_subst(subst))

    def is_ground(self) -> bool:
        return self.atom.is_ground()


@dataclass(frozen=True, slots=True)
class Eq:
    """An equality constraint ``left = right``."""

    left: BaseTerm
    right: BaseTerm

    def __str__(self) -> str:
        return f"{self.left} = {self.right}"

    def apply_subst(self, subst: Optional[Subst]) -> "Eq":
        return Eq(self.left.apply_subst(subst), self.right.apply_subst(subst))


@dataclass(frozen=True, slots=True)
class Ineq:
    """An inequality constraint ``left != right``."""

    left: BaseTerm
    right: BaseTerm

    def __str__(self) -> str:
        return f"{self.left} != {self.right}"

    def apply_subst(self, subst: Optional[Subst]) -> "Ineq":
        return Ineq(self.left.apply_subst(subst), self.right.apply_subst(subst))


Term = Union[Constant, Variable, ApplyFn, Atom, NegAtom, Eq, Ineq]


@dataclass(frozen=True, slots=True)
class TransformStmt:
    """One statement of a transform; ``var`` is None for a ``do`` statement."""

    var: Optional[Variable]
    fn: ApplyFn

    def __str__(self) -> str:
        if self.var is None:
            return f"do {self.fn}"
        return f"let {self.var.symbol} = {self.fn}"


@dataclass(frozen=True, slots=True)
class Transform:
    """A transformation of the relation produced by a clause body."""

    statements: Tuple[TransformStmt, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "statements", tuple(self.statements))

    def is_let_transform(self) -> bool:
        """True for a let-transform, False for a do-transform."""
        return self.statements[0].var is not None

    def __str__(self) -> str:
        return ", ".join(str(s) for s in self.statements)


@dataclass(frozen=True, slots=True)
class Clause:
    """A fact ``A.`` or a rule ``A :- B1, ..., Bn.``, optionally with a transform."""

    head: Atom
    premises: Optional[Tuple[Term, ...]] = None
    transform: Optional[Transform] = None

    def __post_init__(self) -> None:
        if self.premises is not None:
            object.__setattr__(self, "premises", tuple(self.premises))

    def __str__(self) -> str:
        if self.premises is None:
            return f"{self.head}."
        body = ", ".join(str(p) for p in self.premises)
        if self.transform is None:
            return f"{self.head} :- {body}."
        return f"{self.head} :- {body} |> {self.transform}."

    def replace_wildcards(self) -> "Clause":
        """Return a clause in which every wildcard premise variable is fresh."""
        used: set = set()
        add_vars_from_clause(self, used)
        if Variable(WILDCARD_SYMBOL) not in used or self.premises is None:
            return self
        premises = tuple(replace_wildcards(used, p) for p in self.premises)
        return Clause(self.head, premises, self.transform)


class ConstSubstList:
    """An immutable substitution held as a sequence of (variable, constant) pairs."""

    __slots__ = ("_pairs",)

    def __init__(self, pairs: Iterable[Tuple[Variable, Constant]] = ()) -> None:
        self._pairs = tuple(pairs)

    def get(self, variable: Variable) -> Optional[Constant]:
        """Return the first constant bound to ``variable``, or None."""
        for v, c in self._pairs:
            if v == variable:
                return c
        return None

    def extend(self, variable: Variable, constant: Constant) -> "ConstSubstList":
        """Return a new substitution with one more binding."""
        return ConstSubstList(self._pairs + ((variable, constant),))

    def __iter__(self) -> Iterator[Tuple[Variable, Constant]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConstSubstList):
            return NotImplemented
        return self._pairs == other._pairs

    def __hash__(self) -> int:
        return hash(self._pairs)

    def __repr__(self) -> str:
        inner = ", ".join(f"{v}: {c}" for v, c in self._pairs)
        return f"ConstSubstList({inner})"


class SubstMap(dict):
    """A substitution backed by a dictionary from variables to base terms."""

    def get(self, variable: Variable):
        """Return the term bound to ``variable``, or None."""
        return super().get(variable)


def new_atom(predicate: str, *args: BaseTerm) -> Atom:
    """Build an atom, deriving the arity from the arguments."""
    return Atom(PredicateSym(predicate, len(args)), args)


def new_neg_atom(predicate: str, *args: BaseTerm) -> NegAtom:
    """Build a negated atom."""
    return NegAtom(new_atom(predicate, *args))


def new_query(predicate: PredicateSym) -> Atom:
    """Build a goal atom whose arguments are the variables X0, X1, ..."""
    return Atom(predicate, tuple(Variable(f"X{i}") for i in range(predicate.arity)))


def new_clause(head: Atom, premises: Optional[Iterable[Term]]) -> Clause:
    """Build a clause without a transform."""
    return Clause(head, None if premises is None else tuple(premises), None)


def hash_term(symbol: str, args: Iterable[BaseTerm]) -> int:
    """Hash a symbol together with its arguments."""
    data = bytearray(symbol.encode())
    for arg in args:
        if isinstance(arg, Variable):
            data += arg.symbol.encode()
        elif isinstance(arg, (Constant, ApplyFn)):
            data += _struct.pack("<Q", arg.hash_code())
    return hash_bytes(bytes(data))


def fresh_variable(used: set) -> Variable:
    """Return a variable not in ``used`` and record it there."""
    i = 0
    while Variable(f"X{i}") in used:
        i += 1
    fresh = Variable(f"X{i}")
    used.add(fresh)
    return fresh


def replace_wildcards(used: set, term: Term) -> Term:
    """Replace each wildcard in ``term`` by a fresh variable, recording it in ``used``."""
    before = len(used)
    if isinstance(term, Constant):
        return term
    if isinstance(term, Variable):
        return fresh_variable(used) if term.symbol == WILDCARD_SYMBOL else term
    if isinstance(term, ApplyFn):
        replaced: Term = ApplyFn(term.function, tuple(replace_wildcards(used, a) for a in term.args))
    elif isinstance(term, Atom):
        replaced = Atom(term.predicate, tuple(replace_wildcards(used, a) for a in term.args))
    elif isinstance(term, NegAtom):
        replaced = NegAtom(replace_wildcards(used, term.atom))
    elif isinstance(term, Eq):
        replaced = Eq(replace_wildcards(used, term.left), replace_wildcards(used, term.right))
    elif isinstance(term, Ineq):
        replaced = Ineq(replace_wildcards(used, term.left), replace_wildcards(used, term.right))
    else:
        return term
    return term if len(used) == before else replaced


def add_vars(term: Term, used: set) -> None:
    """Add every variable occurring in ``term`` to ``used``."""
    if isinstance(term, Variable):
        used.add(term)
    elif isinstance(term, (ApplyFn, Atom)):
        for arg in term.args:
            add_vars(arg, used)
    elif isinstance(term, NegAtom):
        add_vars(term.atom, used)
    elif isinstance(term, (Eq, Ineq)):
        add_vars(term.left, used)
        add_vars(term.right, used)


def add_vars_from_clause(clause: Clause, used: set) -> None:
    """Add every variable of the clause head and premises to ``used``."""
    add_vars(clause.head, used)
    for premise in clause.premises or ():
        add_vars(premise, used)