from __future__ import annotations

from typing import Iterable, List

from bill_digest.parsers.base import BaseParser
from bill_digest.parsers.builtins import ElectricBillParser, InternetBillParser, WaterBillParser


def default_registry() -> List[BaseParser]:
    """
    Parser registry for one run.
    Fresh instances every call: the label resolver binds label_id onto them.
    """
    return [
        ElectricBillParser(),
        WaterBillParser(),
        InternetBillParser(),
    ]


def registry_from_names(names: Iterable[str]) -> List[BaseParser]:
    """Builtin parsers restricted to the given label names (all of them if names is empty)."""
    wanted = {name.strip() for name in names if name and name.strip()}
    registry = default_registry()
    if not wanted:
        return registry
    return [parser for parser in registry if parser.label_name in wanted]
