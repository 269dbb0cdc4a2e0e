"""Constants, terms, declarations and built-in predicates of a Datalog dialect."""

__version__ = "0.1.0"
__all__ = ["constants", "terms", "decl", "builtin"]