"""Persistence for test cases and execution records."""
from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import SavedTestCase, editable_fields

LOGGER = logging.getLogger("testcase_store")

CASES_FILE = "test_cases.json"
EXECUTIONS_FILE = "test_executions.json"
EXECUTION_LIST_LIMIT = 100
DEFAULT_STORE_DIR = "data"

_EXECUTION_DEFAULTS: Dict[str, Any] = {
    "status": "completed",
    "durationMs": None,
    "totalSteps": 0,
    "passedSteps": 0,
    "failedSteps": 0,
    "errorMessage": None,
    "stepResults": [],
}


class RecordStoreError(RuntimeError):
    """Raised when the backing storage cannot be read or written."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore(ABC):
    """Operations the editor, the HTTP API and the live runner rely on."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[SavedTestCase]:
        """Cases owned by ``user_id``, newest first."""

    @abstractmethod
    def get_by_id(self, case_id: str) -> Optional[SavedTestCase]:
        ...

    @abstractmethod
    def create(self, draft: Dict[str, Any], user_id: str = "anonymous") -> SavedTestCase:
        ...

    @abstractmethod
    def update(self, case_id: str, partial: Dict[str, Any]) -> Optional[SavedTestCase]:
        """Apply ``partial``; None when the case does not exist."""

    @abstractmethod
    def delete(self, case_id: str) -> bool:
        ...

    @abstractmethod
    def append_execution(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Store one execution record and return it with its id."""

    @abstractmethod
    def list_executions(self, test_case_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Newest first, at most ``EXECUTION_LIST_LIMIT`` entries."""


class JsonRecordStore(RecordStore):
    """Keeps both collections as JSON files under one directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()

    @property
    def cases_path(self) -> Path:
        return self.root / CASES_FILE

    @property
    def executions_path(self) -> Path:
        return self.root / EXECUTIONS_FILE

    # ----------------------------------------------------------------- cases
    def list_for_user(self, user_id: str) -> List[SavedTestCase]:
        with self._lock:
            raw_cases = self._read(self.cases_path)
        owned = [(position, SavedTestCase.from_dict(item)) for position, item in enumerate(raw_cases)
                 if item.get("userId") == user_id]
        # insertion order breaks ties between equal timestamps
        owned.sort(key=lambda pair: (pair[1].created_at, pair[0]), reverse=True)
        return [case for _, case in owned]

    def get_by_id(self, case_id: str) -> Optional[SavedTestCase]:
        with self._lock:
            raw_cases = self._read(self.cases_path)
        for item in raw_cases:
            if item.get("id") == case_id:
                return SavedTestCase.from_dict(item)
        return None

    def create(self, draft: Dict[str, Any], user_id: str = "anonymous") -> SavedTestCase:
        now = _now_iso()
        data = editable_fields(draft)
        data.update({"id": uuid.uuid4().hex, "userId": user_id, "createdAt": now, "updatedAt": now})
        case = SavedTestCase.from_dict(data)
        with self._lock:
            raw_cases = self._read(self.cases_path)
            raw_cases.append(case.to_dict())
            self._write(self.cases_path, raw_cases)
        LOGGER.info("Created test case %s (%s)", case.id, case.name)
        return case

    def update(self, case_id: str, partial: Dict[str, Any]) -> Optional[SavedTestCase]:
        changes = editable_fields(partial)
        with self._lock:
            raw_cases = self._read(self.cases_path)
            for position, item in enumerate(raw_cases):
                if item.get("id") != case_id:
                    continue
                merged = {**item, **changes, "updatedAt": _now_iso()}
                case = SavedTestCase.from_dict(merged)
                raw_cases[position] = case.to_dict()
                self._write(self.cases_path, raw_cases)
                LOGGER.info("Updated test case %s", case_id)
                return case
        return None

    def delete(self, case_id: str) -> bool:
        with self._lock:
            raw_cases = self._read(self.cases_path)
            kept = [item for item in raw_cases if item.get("id") != case_id]
            if len(kept) == len(raw_cases):
                return False
            self._write(self.cases_path, kept)
        LOGGER.info("Deleted test case %s", case_id)
        return True

    # ------------------------------------------------------------ executions
    def append_execution(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if not record.get("testCaseId"):
            raise ValueError("testCaseId is required")
        now = _now_iso()
        stored = {**_EXECUTION_DEFAULTS, "startedAt": now, "completedAt": now}
        stored.update({key: value for key, value in record.items() if value is not None})
        stored["id"] = uuid.uuid4().hex
        stored["createdAt"] = now
        with self._lock:
            executions = self._read(self.executions_path)
            executions.append(stored)
            self._write(self.executions_path, executions)
        LOGGER.info("Stored execution %s for test case %s (%s)", stored["id"], stored["testCaseId"], stored["status"])
        return stored

    def list_executions(self, test_case_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            executions = self._read(self.executions_path)
        if test_case_id:
            executions = [item for item in executions if item.get("testCaseId") == test_case_id]
        ordered = sorted(enumerate(executions), key=lambda pair: (pair[1].get("startedAt") or "", pair[0]), reverse=True)
        return [item for _, item in ordered[:EXECUTION_LIST_LIMIT]]

    # --------------------------------------------------------------- storage
    def _read(self, path: Path) -> List[Dict[str, Any]]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise RecordStoreError(f"Failed to read {path}: {exc}") from exc
        if not isinstance(data, list):
            raise RecordStoreError(f"{path} does not hold a JSON array")
        return data

    def _write(self, path: Path, data: List[Dict[str, Any]]) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise RecordStoreError(f"Failed to write {path}: {exc}") from exc


_record_store: Optional[JsonRecordStore] = None


def get_record_store() -> JsonRecordStore:
    """Process-wide store rooted at ``TESTGEN_STORE_DIR``."""
    global _record_store
    if _record_store is None:
        _record_store = JsonRecordStore(Path(os.getenv("TESTGEN_STORE_DIR", DEFAULT_STORE_DIR)))
    return _record_store
