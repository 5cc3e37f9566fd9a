"""Tests for import classification."""

from __future__ import annotations

from storegraph.analyzers.imports import (
    collect_hook_imports,
    collect_store_imports,
    iter_import_declarations,
)
from storegraph.analyzers.tree_sitter import SourceParser
from storegraph.config import ModuleRegistry

SOURCE = """
import { atom as createAtom, map, notAFactory } from "nanostores";
import * as core from "@nanostores/core";
import * as persistent from "@nanostores/persistent";
import { persistentMap } from "@nanostores/persistent";
import { computed } from "other-lib";
import { useStore as useNano } from "@nanostores/react";
import * as vue from "@nanostores/vue";
import { useStore as useOther } from "react";
import Default, { helper } from "./local";
"""


def _parse(code: str = SOURCE, dialect: str = "ts"):
    return SourceParser().parse("file.ts", code.lstrip("\n"), dialect)


def test_iter_import_declarations_reduces_bindings() -> None:
    declarations = iter_import_declarations(_parse())

    first = declarations[0]
    assert first.specifier == "nanostores"
    assert first.line == 1
    assert first.named == [("atom", "createAtom"), ("map", "map"), ("notAFactory", "notAFactory")]

    local = declarations[-1]
    assert local.specifier == "./local"
    assert local.default == "Default"
    assert local.named == [("helper", "helper")]
    assert declarations[1].namespace == "core"


def test_store_imports_classify_known_factories_only() -> None:
    imports = collect_store_imports(_parse(), ModuleRegistry.with_defaults())

    assert imports.store_factories == {
        "createAtom": "atom",
        "map": "map",
        "persistentMap": "persistentMap",
    }
    # Namespaces count for base modules only.
    assert imports.namespaces == {"core"}


def test_hook_imports_follow_hook_modules() -> None:
    imports = collect_hook_imports(_parse(), ModuleRegistry.with_defaults())

    assert imports.hook_functions == {"useNano"}
    assert imports.namespaces == {"vue"}


def test_registry_extensions_change_classification() -> None:
    registry = ModuleRegistry.with_defaults()
    registry.add_base_module("other-lib")
    registry.add_hook_module("react")

    assert collect_store_imports(_parse(), registry).store_factories["computed"] == "computed"
    assert collect_hook_imports(_parse(), registry).hook_functions == {"useNano", "useOther"}
