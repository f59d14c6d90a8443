'''Result sinks, the persistence contract of the engine.

Results are stored per (election, level) pair, the levels being ``district``
(one record per entity and district) and ``national`` (one record per entity).
A computation run replaces the whole record set of a pair or does not touch
it at all; records are never patched individually.
'''

import abc
import copy
import json
import os
import tempfile
import threading
from typing import Any, Dict, List, Tuple

import seatlib.persist


LEVELS = ('district', 'national')


class ResultSink(metaclass=abc.ABCMeta):
    '''Store the result records of apportionment runs.'''

    @abc.abstractmethod
    def replace(self,
                election_id: Any,
                level: str,
                records: List[Dict[str, Any]],
                ) -> None:
        '''Replace all records of the election at the given level.

        The replacement must be atomic: either all given records become
        visible, or the previous ones stay.
        '''
        raise NotImplementedError

    @abc.abstractmethod
    def fetch(self, election_id: Any, level: str) -> List[Dict[str, Any]]:
        '''Return the current records of the election at the given level.'''
        raise NotImplementedError


def _check_level(level: str) -> None:
    if level not in LEVELS:
        raise ValueError(f'unknown result level {level!r}, use one of '
                         + ', '.join(LEVELS))


class MemoryResultSink(ResultSink):
    '''Keep result records in memory. Safe to share between threads.'''

    def __init__(self):
        self._records: Dict[Tuple[Any, str], List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def replace(self,
                election_id: Any,
                level: str,
                records: List[Dict[str, Any]],
                ) -> None:
        _check_level(level)
        new_records = copy.deepcopy(list(records))
        with self._lock:
            self._records[election_id, level] = new_records

    def fetch(self, election_id: Any, level: str) -> List[Dict[str, Any]]:
        _check_level(level)
        with self._lock:
            return copy.deepcopy(self._records.get((election_id, level), []))


class JSONDirectoryResultSink(ResultSink):
    '''Store result records as JSON files in a directory.

    Each (election, level) pair is one file. Replacement writes a temporary
    file in the same directory and renames it over the target, which the
    operating system performs atomically.

    :param directory: Directory to store the files in; created if missing.
    '''
    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def path(self, election_id: Any, level: str) -> str:
        '''Return the file of the records; the id must be a plain name.

        :raises ValueError: If the election id is empty, a dot name or
            contains a path separator.
        '''
        name = str(election_id)
        if name in ('', '.', '..') or '/' in name or '\\' in name:
            raise ValueError(f'invalid election id for a file name: {name!r}')
        return os.path.join(self.directory, f'{name}.{level}.json')

    def replace(self,
                election_id: Any,
                level: str,
                records: List[Dict[str, Any]],
                ) -> None:
        _check_level(level)
        target = self.path(election_id, level)
        payload = json.dumps(
            seatlib.persist.records_to_json(list(records)),
            ensure_ascii=False,
            indent=1,
        )
        fd, tmp_path = tempfile.mkstemp(
            dir=self.directory, prefix='.tmp-', suffix='.json'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf8') as outfile:
                outfile.write(payload)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def fetch(self, election_id: Any, level: str) -> List[Dict[str, Any]]:
        _check_level(level)
        try:
            with open(self.path(election_id, level), encoding='utf8') as infile:
                return seatlib.persist.records_from_json(json.load(infile))
        except FileNotFoundError:
            return []
