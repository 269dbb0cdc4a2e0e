# mangle

Building blocks for a Datalog dialect with structured data. The package provides
typed constants (names, strings, numbers, floats, pairs, lists, maps and structs),
terms and clauses, predicate declarations, and evaluation of built-in predicates.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `mangle.constants`: the immutable `Constant` value type (kind given by
  `ConstantType`) and its constructors `name`, `string`, `number`, `float64`,
  `pair`, `list_cons`, `map_cons`, `struct_cons`, `list_of`, `map_of` and
  `struct_of`, plus the empty values `LIST_NIL`, `MAP_NIL` and `STRUCT_NIL`.
  Accessors such as `number_value()` or `pair_value()` raise `ConstantError`
  when called on a constant of another kind, and `name()` raises it for a
  malformed name. `list_values()`, `map_items()` and `struct_items()` iterate
  over structured constants. Maps and structs are ordered by key hash, so two
  maps built from the same entries in any order compare equal.
- `mangle.terms`: `Variable`, `PredicateSym`, `FunctionSym`, `Atom`, `NegAtom`,
  `ApplyFn`, `Eq`, `Ineq`, `Transform`, `TransformStmt` and `Clause`;
  substitutions `ConstSubstList` (immutable, extended with `extend`) and
  `SubstMap` (a dictionary); and helpers `new_atom`, `new_neg_atom`,
  `new_query`, `new_clause`, `add_vars`, `add_vars_from_clause`,
  `fresh_variable`, `replace_wildcards` and `hash_term`.
- `mangle.decl`: declarations (`Decl`) with descriptor queries such as `doc()`,
  `modes()`, `package_id()`, `visible()` and `reflects()`; argument modes
  (`ArgMode`, `Mode`, whose `check` raises `DeclError` for an incompatible
  goal); `BoundDecl` and `InclusionConstraint`; and the constructors
  `new_decl`, `new_synthetic_decl`, `new_synthetic_decl_from_sym`,
  `new_bound_decl` and `new_inclusion_constraint`. `new_decl` raises
  `DeclError` if an argument of the declared atom is not a variable.
- `mangle.builtin`: `decide(atom, subst)` evaluates a built-in predicate
  (`:lt`, `:le`, `:gt`, `:ge`, `:within_distance`, `:match_prefix`,
  `:string:starts_with`, `:string:ends_with`, `:string:contains`,
  `:match_pair`, `:match_cons`, `:match_nil`, `:match_entry`, `:match_field`,
  `:list:member`) and returns a pair: whether it holds, and the list of
  substitutions under which it holds. `is_builtin_predicate` tells whether a
  predicate symbol is one of these; their modes are in `PREDICATES`. Misuse,
  such as a wrong number of arguments or a non-number in a comparison, raises
  `BuiltinError`.

## Example

```python
from mangle.constants import name, number, list_of
from mangle.terms import Variable, new_atom
from mangle.builtin import decide

edge = new_atom("edge", name("/a"), Variable("X"))
print(edge)                               # edge(/a,X)
print(list_of([number(1), name("/b")]))   # [1, /b]

holds, substs = decide(new_atom(":list:member", Variable("X"),
                                list_of([number(1), number(2)])), None)
print(holds, [s.get(Variable("X")) for s in substs])
```

Constants print in the surface syntax of the language.

## What this package does not do

There is no parser for program text, no fact store and no evaluation engine
that computes the consequences of a set of rules. Function applications
(`ApplyFn`, such as `fn:plus`) can be built and printed, but are not evaluated:
`decide` raises `BuiltinError` when it meets one instead of a value. There is
no command-line interface.