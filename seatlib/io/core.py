"""Shared functionality for election document I/O. Internal."""

from __future__ import annotations

import dataclasses
import json
import typing
from typing import Any, Callable, Iterable, Optional, TextIO, Tuple

from seatlib.errors import InvalidConfiguration
from seatlib.model import Election, VoteTally
from seatlib.settings import EngineSettings


class ParseError(InvalidConfiguration):
    """An input that is invalid according to the document format was detected."""
    pass


@dataclasses.dataclass
class ElectionData:
    """A container for data returnable from an election document."""
    election: Election
    tally: VoteTally
    settings: Optional[EngineSettings] = None


def loaders(doc_loader: Callable[..., ElectionData]
            ) -> Tuple[Callable[..., ElectionData], Callable[..., ElectionData]]:
    """Create load() and loads() functions from a parsed document loader."""
    return_annot = typing.get_type_hints(doc_loader).get('return')
    if return_annot is None:
        return_annot = Any

    def load(file: TextIO, **kwargs) -> return_annot:
        try:
            document = json.load(file)
        except json.JSONDecodeError as e:
            raise ParseError(f'invalid JSON document: {e}') from e
        return doc_loader(document, **kwargs)

    def loads(text: str, **kwargs) -> return_annot:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f'invalid JSON document: {e}') from e
        return doc_loader(document, **kwargs)

    return load, loads


def dumpers(line_dumper: Callable[..., Iterable[str]]
            ) -> Tuple[Callable[..., None], Callable[..., str]]:
    """Create dump() and dumps() functions from a line generator function."""

    def dump(file: TextIO, *args, **kwargs) -> None:
        for line in line_dumper(*args, **kwargs):
            if not line.endswith('\n'):
                line += '\n'
            file.write(line)

    def dumps(*args, **kwargs) -> str:
        return ''.join(
            line + ('' if line.endswith('\n') else '\n')
            for line in line_dumper(*args, **kwargs)
        )

    return dump, dumps
