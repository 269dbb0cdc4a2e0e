"""Predicate declarations: descriptors, modes, bounds and inclusion constraints."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

from mangle.constants import ANY_BOUND, Constant, ConstantError, ConstantType, string
from mangle.terms import (
    Atom,
    BaseTerm,
    PredicateSym,
    Variable,
    add_vars,
    fresh_variable,
    new_atom,
    new_query,
)

DESCR_EXTENSIONAL = "extensional"
DESCR_MODE = "mode"
DESCR_REFLECTS = "reflects"
DESCR_SYNTHETIC = "synthetic"
DESCR_PRIVATE = "private"
DESCR_DOC = "doc"
DESCR_ARG = "arg"
DESCR_NAME = "name"
DESCR_DESUGARED = "desugared"

INPUT_STRING = "+"
OUTPUT_STRING = "-"
INPUT_OUTPUT_STRING = "?"


class DeclError(ValueError):
    """Raised when a declaration is malformed or a goal violates a mode."""


class ArgMode(enum.IntEnum):
    """Whether an argument is input, output, or either."""

    INPUT = 1
    OUTPUT = 2
    INPUT_OUTPUT = 3


_MODE_BY_STRING = {
    INPUT_STRING: ArgMode.INPUT,
    OUTPUT_STRING: ArgMode.OUTPUT,
    INPUT_OUTPUT_STRING: ArgMode.INPUT_OUTPUT,
}


class Mode(tuple):
    """A supported mode of a predicate: one ArgMode per argument."""

    def __new__(cls, modes: Iterable[ArgMode] = ()) -> "Mode":
        return super().__new__(cls, (ArgMode(m) for m in modes))

    def check(self, goal: Atom, bound_vars: Optional[set]) -> None:
        """Raise DeclError if the goal is incompatible with this mode."""

        def is_free(v: Variable) -> bool:
            return bound_vars is None or v not in bound_vars

        if len(self) != len(goal.args):
            raise DeclError(
                f"number of arguments, {[str(a) for a in goal.args]}, "
                f"does not match the mode {list(self)}"
            )
        for i, (arg_mode, arg) in enumerate(zip(self, goal.args)):
            if arg_mode == ArgMode.INPUT:
                if isinstance(arg, Variable) and is_free(arg):
                    raise DeclError(
                        f"for goal {goal} expected {arg} (arg {i}) "
                        "to be constant or bound variable"
                    )
            elif arg_mode == ArgMode.OUTPUT:
                if not isinstance(arg, Variable) or not is_free(arg):
                    raise DeclError(
                        f"for goal {goal} expected {arg} (arg {i}) to be a free variable"
                    )


@dataclass(frozen=True)
class BoundDecl:
    """A bound declaration: one type expression or predicate reference per argument."""

    bounds: Tuple[BaseTerm, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "bounds", tuple(self.bounds))

    def __str__(self) -> str:
        return "[" + ", ".join(str(b) for b in self.bounds) + "]"


@dataclass(frozen=True)
class InclusionConstraint:
    """All consequences must hold, and in addition one of the alternatives."""

    consequences: Tuple[Atom, ...] = ()
    alternatives: Tuple[Tuple[Atom, ...], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "consequences", tuple(self.consequences))
        object.__setattr__(
            self, "alternatives", tuple(tuple(alt) for alt in self.alternatives)
        )


@dataclass(frozen=True)
class Decl:
    """A declaration of a predicate with descriptors, bounds and constraints."""

    declared_atom: Atom
    descr: Tuple[Atom, ...] = ()
    bounds: Tuple[BoundDecl, ...] = ()
    constraints: Optional[InclusionConstraint] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "descr", tuple(self.descr))
        object.__setattr__(self, "bounds", tuple(self.bounds))

    def _descriptors(self, symbol: str) -> Iterator[Atom]:
        return (a for a in self.descr if a.predicate.symbol == symbol)

    def _has_descr(self, symbol: str) -> bool:
        return any(True for _ in self._descriptors(symbol))

    def doc(self) -> List[str]:
        """Return the doc strings from the description atoms."""
        result: List[str] = []
        for atom in self._descriptors(DESCR_DOC):
            for arg in atom.args:
                if not isinstance(arg, Constant) or arg.type != ConstantType.STRING:
                    break
                result.append(arg.symbol)
        return result

    def is_extensional(self) -> bool:
        return self._has_descr(DESCR_EXTENSIONAL)

    def is_desugared(self) -> bool:
        return self._has_descr(DESCR_DESUGARED)

    def modes(self) -> List[Mode]:
        """Return the declared modes; an empty list means all modes are supported."""
        result: List[Mode] = []
        for atom in self._descriptors(DESCR_MODE):
            converted = []
            for arg in atom.args:
                if not isinstance(arg, Constant) or arg.type != ConstantType.STRING:
                    converted = []
                    break
                arg_mode = _MODE_BY_STRING.get(arg.symbol)
                if arg_mode is None:
                    converted = []
                    break
                converted.append(arg_mode)
            if converted:
                result.append(Mode(converted))
        return result

    def package_id(self) -> str:
        """Return the package part of the predicate name."""
        symbol = self.declared_atom.predicate.symbol
        if symbol == "Package":
            for atom in self._descriptors(DESCR_NAME):
                try:
                    return atom.args[0].string_value()
                except (ConstantError, AttributeError):
                    return ""
        package, dot, _ = symbol.rpartition(".")
        return package if dot else ""

    def visible(self) -> bool:
        """True unless the predicate is declared private."""
        return not self._has_descr(DESCR_PRIVATE)

    def is_synthetic(self) -> bool:
        return self._has_descr(DESCR_SYNTHETIC)

    def reflects(self) -> Optional[Constant]:
        """Return the name prefix this predicate reflects, or None."""
        found: Optional[Constant] = None
        for atom in self._descriptors(DESCR_REFLECTS):
            if len(atom.args) == 1 and isinstance(atom.args[0], Constant):
                found = atom.args[0]
        return found


def new_bound_decl(*args: BaseTerm) -> BoundDecl:
    """Build a bound declaration from its bounds."""
    return BoundDecl(args)


def new_inclusion_constraint(consequences: Iterable[Atom]) -> InclusionConstraint:
    """Build an inclusion constraint with consequences and no alternatives."""
    return InclusionConstraint(tuple(consequences), ())


def new_decl(
    atom: Atom,
    descr_atoms: Optional[Iterable[Atom]],
    bounds: Optional[Iterable[BoundDecl]],
    constraints: Optional[InclusionConstraint],
) -> Decl:
    """Build a declaration; every argument of the declared atom must be a variable."""
    if descr_atoms is None:
        descr_atoms = [new_atom(DESCR_DOC, string(""))]
    for i, arg in enumerate(atom.args):
        if not isinstance(arg, Variable):
            raise DeclError(f"argument {i} must be a variable, found {arg}")
    return Decl(atom, tuple(descr_atoms), tuple(bounds or ()), constraints)


def new_synthetic_decl(declared_atom: Atom) -> Decl:
    """Build a synthetic declaration supporting every mode, with /any bounds."""
    arity = declared_atom.predicate.arity
    mode_args = [string(INPUT_OUTPUT_STRING)] * arity
    unknown_bounds = [ANY_BOUND] * arity
    descr_atoms = [
        new_atom(DESCR_DOC, string("")),
        new_atom(DESCR_MODE, *mode_args),
        new_atom(DESCR_SYNTHETIC),
    ]
    used: set = set()
    add_vars(declared_atom, used)
    args = tuple(
        arg if isinstance(arg, Variable) else fresh_variable(used)
        for arg in declared_atom.args
    )
    return new_decl(
        Atom(declared_atom.predicate, args),
        descr_atoms,
        [BoundDecl(unknown_bounds)],
        None,
    )


def new_synthetic_decl_from_sym(sym: PredicateSym) -> Decl:
    """Build a synthetic declaration for a predicate symbol."""
    return new_synthetic_decl(new_query(sym))