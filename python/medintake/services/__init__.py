"""Service layer.

Module-level functions taking an explicit Session as first argument.
Every tenant read/write embeds the ownership predicate in its statement.
"""
