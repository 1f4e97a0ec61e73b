from __future__ import annotations

import concurrent.futures
import os
import queue
import time
from copy import deepcopy
from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from nonl.services.activation_policy import document_activates
from nonl.services.file_search_service import DEFAULT_EXCLUDE_DIRS, search_project
from nonl.services.language_id import language_id_for_path
from nonl.services.reference_index import DocumentIndex, ReferenceIndex, changed_identifiers
from nonl.services.syntax_profiles import SyntaxProfile, profile_for_kind
from nonl.services.tag_scanner import Occurrence
from nonl.services.xref_dispatcher import SearchRequest, dispatch
from nonl.settings_models import default_nonl_settings
from nonl.settings_store import JsonSettingsStore, deep_merge_defaults, project_settings_store
from nonl.utils.logging import logger


@dataclass(frozen=True)
class _ActiveDocument:
    kind: str
    profile: SyntaxProfile


@dataclass
class _IndexPayload:
    document_id: str
    token: int
    reason: str
    text: str
    profile: SyntaxProfile


class NonlManager(QObject):
    documentIndexUpdated = Signal(str, object)     # document_id, DocumentIndex
    documentIndexCleared = Signal(str)             # document_id
    searchRequested = Signal(object)               # SearchRequest
    searchResultsReady = Signal(object, object)    # SearchRequest, list[SearchMatch]
    statusMessage = Signal(str)

    DEFAULTS = default_nonl_settings()
    SEARCH_BACKENDS = {"builtin", "none"}
    REASONS = {"open", "idle", "save"}

    def __init__(
        self,
        project_root: str,
        parent=None,
        *,
        reference_index: ReferenceIndex | None = None,
        settings_store: JsonSettingsStore | None = None,
    ):
        super().__init__(parent)
        self._project_root = os.path.abspath(str(project_root or "."))
        self._index = reference_index if reference_index is not None else ReferenceIndex()

        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=4,
            thread_name_prefix="nonl-index",
        )
        self._active_futures: set[concurrent.futures.Future] = set()
        self._result_queue: queue.Queue[dict] = queue.Queue()
        self._result_pump = QTimer(self)
        self._result_pump.setInterval(35)
        self._result_pump.timeout.connect(self._drain_result_queue)
        self._result_pump.start()

        self._cfg: dict = {}
        self._active: dict[str, _ActiveDocument] = {}
        self._latest_token_by_doc: dict[str, int] = {}
        self._debounce_timers: dict[str, QTimer] = {}
        self._pending_requests: dict[str, tuple[str, str, int]] = {}
        self._running_docs: set[str] = set()
        self._queued_after_running: dict[str, tuple[str, str, int]] = {}

        if settings_store is None:
            settings_store = project_settings_store(self._project_root)
        self._settings_store = settings_store
        self._apply_stored_settings()

    # ---------- Public API ----------

    @property
    def project_root(self) -> str:
        return self._project_root

    @property
    def reference_index(self) -> ReferenceIndex:
        return self._index

    def settings(self) -> dict:
        return dict(self._cfg)

    def update_settings(self, cfg: dict):
        merged = deep_merge_defaults(cfg if isinstance(cfg, dict) else {}, self.DEFAULTS)
        self._cfg = self._normalize_cfg(merged)

        if not self._cfg["enabled"]:
            self._stop_all_timers()
            for document_id in list(self._active):
                self.deactivate_document(document_id)
            return

        for document_id, active in list(self._active.items()):
            if not document_activates(active.kind, self._cfg["include_kinds"], self._cfg["exclude_kinds"]):
                self.deactivate_document(document_id)

    def reload_settings(self) -> bool:
        """Re-read the project settings file and apply it."""
        self._settings_store.load()
        return self._apply_stored_settings()

    def save_settings(self):
        self._settings_store.set("nonl", deepcopy(self._cfg))
        self._settings_store.save()

    def activate_document(self, document_id: str, text: str, kind: str | None = None) -> bool:
        doc = str(document_id or "")
        if not doc or not self._cfg["enabled"]:
            return False
        doc_kind = str(kind or "").strip().lower() or language_id_for_path(doc)
        if not document_activates(doc_kind, self._cfg["include_kinds"], self._cfg["exclude_kinds"]):
            logger.debug("NONL inactive for {} (kind={})", doc, doc_kind)
            if doc in self._active:
                self.deactivate_document(doc)
            return False

        profile = profile_for_kind(doc_kind)
        if profile is None:
            return False
        self._active[doc] = _ActiveDocument(kind=doc_kind, profile=profile)
        self.request_update(doc, text, reason="open")
        return True

    def deactivate_document(self, document_id: str):
        doc = str(document_id or "")
        self._invalidate_doc_token(doc)
        self._cancel_doc_timer(doc)
        self._pending_requests.pop(doc, None)
        self._queued_after_running.pop(doc, None)
        self._active.pop(doc, None)
        if self._index.discard(doc) is not None:
            self.documentIndexCleared.emit(doc)

    def is_active(self, document_id: str) -> bool:
        return str(document_id or "") in self._active

    def active_documents(self) -> list[str]:
        return sorted(self._active)

    def has_pending_update(self, document_id: str) -> bool:
        """True while an idle edit is waiting out its debounce."""
        return str(document_id or "") in self._pending_requests

    def request_update(self, document_id: str, text: str, reason: str = "idle"):
        doc = str(document_id or "")
        if doc not in self._active:
            return
        if reason not in self.REASONS:
            reason = "idle"
        if reason == "idle" and not self._cfg["run_on_idle"]:
            return
        if reason == "save" and not self._cfg["run_on_save"]:
            return

        token = self._next_token(doc)
        source_text = str(text or "")
        if reason == "idle":
            self._pending_requests[doc] = (source_text, reason, token)
            timer = self._debounce_timers.get(doc)
            if timer is None:
                timer = QTimer(self)
                timer.setSingleShot(True)
                timer.timeout.connect(lambda d=doc: self._flush_debounced_request(d))
                self._debounce_timers[doc] = timer
            timer.start(int(self._cfg["debounce_ms"]))
            return

        # An open or save supersedes any idle request still waiting on its timer.
        self._cancel_doc_timer(doc)
        self._pending_requests.pop(doc, None)
        self._start_worker(doc, source_text, reason, token)

    def document_index(self, document_id: str) -> DocumentIndex | None:
        return self._index.document(str(document_id or ""))

    def occurrence_at(self, document_id: str, offset: int) -> Occurrence | None:
        index = self.document_index(document_id)
        if index is None:
            return None
        return index.occurrence_at(offset)

    def locate_at(self, document_id: str, offset: int) -> SearchRequest | None:
        occurrence = self.occurrence_at(document_id, offset)
        if occurrence is None:
            return None
        if not occurrence.identifier:
            self.statusMessage.emit("NONL tag has no identifier to search for.")
            return None
        return self.locate_identifier(occurrence.identifier)

    def locate_identifier(self, identifier: str) -> SearchRequest:
        request = dispatch(identifier, self.search_scope())
        logger.debug("Dispatching NONL search for {!r} under {}", request.identifier, request.scope)
        self.searchRequested.emit(request)
        if self._cfg["search"]["backend"] == "builtin":
            self._submit(self._run_search, request)
        return request

    def search_scope(self) -> str:
        scope = str(self._cfg["search"].get("scope") or "").strip()
        if not scope:
            return self._project_root
        scope = os.path.expanduser(scope)
        if not os.path.isabs(scope):
            scope = os.path.join(self._project_root, scope)
        return os.path.normpath(scope)

    def flush_pending(self):
        for doc in list(self._pending_requests):
            self._cancel_doc_timer(doc)
            self._flush_debounced_request(doc)

    def wait_for_idle(self, timeout: float = 5.0) -> bool:
        """Block until queued work has finished and its results were applied."""
        deadline = time.monotonic() + max(0.0, float(timeout))
        while True:
            self._drain_result_queue()
            pending = [fut for fut in list(self._active_futures) if not fut.done()]
            if not pending and not self._running_docs and self._result_queue.empty():
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            concurrent.futures.wait(pending, timeout=min(remaining, 0.05))

    def shutdown(self):
        self._stop_all_timers()
        self._result_pump.stop()
        for fut in list(self._active_futures):
            fut.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ---------- Scheduling ----------

    def _start_worker(self, document_id: str, text: str, reason: str, token: int):
        active = self._active.get(document_id)
        if active is None:
            return
        if document_id in self._running_docs:
            # Last write wins: only the newest request waits for the running one.
            self._queued_after_running[document_id] = (text, reason, token)
            return

        payload = _IndexPayload(
            document_id=document_id,
            token=token,
            reason=reason,
            text=text,
            profile=active.profile,
        )
        if self._submit(self._run_index_payload, payload):
            self._running_docs.add(document_id)

    def _submit(self, fn, arg) -> bool:
        try:
            future = self._executor.submit(fn, arg)
        except RuntimeError as exc:
            logger.warning("NONL worker pool unavailable: {}", exc)
            return False
        self._active_futures.add(future)
        future.add_done_callback(self._active_futures.discard)
        return True

    def _run_index_payload(self, payload: _IndexPayload):
        result: dict = {"kind": "index", "document_id": payload.document_id, "token": payload.token, "index": None}
        try:
            result["index"] = self._index.build(payload.document_id, payload.text, payload.profile)
        except Exception:
            logger.exception("NONL index rebuild failed for {}", payload.document_id)
        self._result_queue.put(result)

    def _run_search(self, request: SearchRequest):
        search_cfg = self._cfg["search"]
        matches: list = []
        try:
            matches = search_project(
                request,
                exclude_dirs=search_cfg["exclude_dirs"],
                max_results=search_cfg["max_results"],
            )
        except Exception:
            logger.exception("NONL search failed for {!r}", request.identifier)
        self._result_queue.put({"kind": "search", "request": request, "matches": matches})

    def _drain_result_queue(self):
        while True:
            try:
                result_obj = self._result_queue.get_nowait()
            except queue.Empty:
                return
            try:
                if result_obj.get("kind") == "search":
                    self._on_search_finished(result_obj)
                else:
                    self._on_worker_finished(result_obj)
            except Exception:
                # Result handling must never take down the host event loop.
                logger.exception("Failed to apply NONL worker result")
                continue

    def _flush_debounced_request(self, document_id: str):
        pending = self._pending_requests.pop(document_id, None)
        if pending is None:
            return
        text, reason, token = pending
        self._start_worker(document_id, text, reason, token)

    def _on_worker_finished(self, result_obj: dict):
        doc = str(result_obj.get("document_id") or "")
        token = int(result_obj.get("token") or 0)
        self._running_docs.discard(doc)
        queued = self._queued_after_running.pop(doc, None)

        index = result_obj.get("index")
        latest = self._latest_token_by_doc.get(doc, 0)
        if token == latest and doc in self._active and isinstance(index, DocumentIndex):
            previous = self._index.commit(index)
            changed = changed_identifiers(previous, index)
            logger.debug(
                "NONL index for {} updated: {} occurrence(s), {} identifier(s) changed",
                doc,
                len(index),
                len(changed),
            )
            self.documentIndexUpdated.emit(doc, index)
        elif token != latest:
            logger.trace("Dropped stale NONL index for {} (token {} < {})", doc, token, latest)
        if doc not in self._active:
            # The build re-created a lexer cache for a document closed meanwhile.
            self._index.discard(doc)

        if queued is not None and doc in self._active:
            text, reason, queued_token = queued
            if queued_token == self._latest_token_by_doc.get(doc, 0):
                self._start_worker(doc, text, reason, queued_token)

    def _on_search_finished(self, result_obj: dict):
        request = result_obj.get("request")
        matches = result_obj.get("matches") or []
        if not isinstance(request, SearchRequest):
            return
        self.searchResultsReady.emit(request, list(matches))
        self.statusMessage.emit(f"NONL: {len(matches)} reference(s) to '{request.identifier}'.")

    # ---------- Helpers ----------

    def _next_token(self, document_id: str) -> int:
        token = self._latest_token_by_doc.get(document_id, 0) + 1
        self._latest_token_by_doc[document_id] = token
        return token

    def _invalidate_doc_token(self, document_id: str):
        self._next_token(document_id)

    def _cancel_doc_timer(self, document_id: str):
        timer = self._debounce_timers.pop(document_id, None)
        if timer is None:
            return
        timer.stop()
        timer.deleteLater()

    def _stop_all_timers(self):
        for key in list(self._debounce_timers.keys()):
            self._cancel_doc_timer(key)
        self._pending_requests.clear()

    def _apply_stored_settings(self) -> bool:
        error = self._settings_store.last_error
        if error:
            self.statusMessage.emit(f"NONL settings ignored: {error}")
        self.update_settings(self._settings_store.get("nonl", {}))
        return error is None

    @staticmethod
    def _kind_list(value: Optional[object], fallback: list[str]) -> list[str]:
        if not isinstance(value, (list, tuple, set)):
            return list(fallback)
        out: list[str] = []
        for item in value:
            text = str(item or "").strip().lower()
            if text and text not in out:
                out.append(text)
        return out

    def _normalize_cfg(self, cfg: dict) -> dict:
        out = dict(cfg)
        out["enabled"] = bool(out.get("enabled", True))
        out["run_on_idle"] = bool(out.get("run_on_idle", True))
        out["run_on_save"] = bool(out.get("run_on_save", True))
        try:
            debounce = int(out.get("debounce_ms", 400))
        except (TypeError, ValueError):
            logger.warning("Invalid NONL debounce_ms {!r}; using 400", out.get("debounce_ms"))
            debounce = 400
        out["debounce_ms"] = max(50, min(5000, debounce))
        out["include_kinds"] = self._kind_list(out.get("include_kinds"), ["prog"])
        out["exclude_kinds"] = self._kind_list(out.get("exclude_kinds"), [])

        search_cfg = out.get("search")
        if not isinstance(search_cfg, dict):
            search_cfg = {}
        search_cfg = dict(search_cfg)
        backend = str(search_cfg.get("backend", "builtin")).strip().lower()
        if backend not in self.SEARCH_BACKENDS:
            backend = "builtin"
        search_cfg["backend"] = backend
        search_cfg["scope"] = str(search_cfg.get("scope") or "")
        try:
            max_results = int(search_cfg.get("max_results", 20000))
        except (TypeError, ValueError):
            max_results = 20000
        search_cfg["max_results"] = max(1, min(200000, max_results))
        exclude_dirs = search_cfg.get("exclude_dirs")
        if isinstance(exclude_dirs, list):
            search_cfg["exclude_dirs"] = [str(item) for item in exclude_dirs if str(item or "").strip()]
        else:
            search_cfg["exclude_dirs"] = list(DEFAULT_EXCLUDE_DIRS)
        out["search"] = search_cfg
        return out
