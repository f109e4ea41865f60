"""HTTP sidecar server for contract-guard.

Runs as a lightweight stdlib HTTP server on localhost so a browser UI can
keep masking and review state out of its own code.

Endpoints:
    GET  /health                 Health check
    GET  /sessions               List stored sessions
    POST /mask                   Mask text             {text, rules?, detectors?}
    POST /unmask                 Restore placeholders  {text, placeholder_map}
    POST /review/open            Start a review        {text, name?, response | risks, masking?}
    POST /review/state           Current review state  {review_id, original?}
    POST /review/accept          Accept a risk         {review_id, risk_id, animate?}
    POST /review/ignore          Ignore a risk         {review_id, risk_id}
    POST /review/undo            Undo last edit        {review_id}
    POST /review/navigate        Move focus            {review_id, direction}
    POST /review/select          Focus a risk          {review_id, risk_id | level}
    POST /review/finish          End accept animation  {review_id}
    POST /review/save            Persist the review    {review_id}
    POST /review/export          Unmasked text         {review_id}
    POST /review/close           Drop an open review   {review_id}

All endpoints expect/return JSON.  The server handles one request at a
time, so each open review has a single writer.
"""

from __future__ import annotations
import json
import logging
import os
import time
from http.server import HTTPServer, BaseHTTPRequestHandler
from pathlib import Path
from typing import Any

from .analyzer import classify_payload, normalize_risks, parse_risk_response
from .errors import (
    ContractGuardError,
    UnknownDetectorError,
    UnknownRiskError,
    UnknownSessionError,
)
from .reconcile import ReviewDocument
from .rules import RuleBook
from .session import build_session, open_session, snapshot_session
from .store import DEFAULT_LIMIT
from .store_sqlite import SqliteSessionStore
from .types import Document, MaskingResult, ReviewSession, RiskLevel
from .vault import unmask

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("CONTRACT_GUARD_PORT", "18792"))
DEFAULT_DB = os.environ.get(
    "CONTRACT_GUARD_DB",
    str(Path.home() / ".contract-guard" / "sessions.db"),
)

# Shared state
_store: SqliteSessionStore | None = None
_reviews: dict[str, tuple[ReviewSession, ReviewDocument]] = {}
_db_path: str = DEFAULT_DB

# Reviews kept in memory at once
MAX_OPEN_REVIEWS = DEFAULT_LIMIT


def _get_store() -> SqliteSessionStore:
    global _store
    if _store is None:
        _store = SqliteSessionStore(db_path=_db_path)
    return _store


def _remember(
    review_id: str, session: ReviewSession, review: ReviewDocument,
) -> tuple[ReviewSession, ReviewDocument]:
    """Keep a review open, most recently used last.

    Past MAX_OPEN_REVIEWS the least recently used review is saved to the
    store and dropped; a later request reopens it from there.
    """
    _reviews.pop(review_id, None)
    _reviews[review_id] = (session, review)
    while len(_reviews) > MAX_OPEN_REVIEWS:
        old_id = next(iter(_reviews))
        old_session, old_review = _reviews.pop(old_id)
        _get_store().save_session(snapshot_session(old_session, old_review, time.time()))
        logger.debug("evicted open review %s", old_id)
    return _reviews[review_id]


def _get_review(review_id: str | None) -> tuple[ReviewSession, ReviewDocument]:
    if review_id in _reviews:
        return _remember(review_id, *_reviews[review_id])
    if review_id is None:
        raise UnknownSessionError("review_id missing")
    # reopen a stored session from its saved text
    session = _get_store().get_session(review_id)
    return _remember(review_id, session, open_session(session))


def _review_state(review_id: str, review: ReviewDocument, original: bool = False) -> dict[str, Any]:
    summary = review.summary()
    position, count = review.focus_position()
    return {
        "review_id": review_id,
        "working_text": review.working_text,
        "selected_id": review.selected_id,
        "animating_id": review.animating_id,
        "can_undo": review.can_undo,
        "focus": {"position": position, "count": count},
        "segments": [
            {
                "text": s.text,
                "risk_id": s.risk_id,
                "level": s.level.value if s.level else None,
                "is_animating": s.is_animating,
            }
            for s in review.segment_document(unmasked=original)
        ],
        "summary": {
            "total": summary.total,
            "addressed": summary.addressed,
            "active": summary.active,
            "hidden": summary.hidden,
            "pending_by_level": {k.value: v for k, v in summary.pending_by_level.items()},
        },
    }


def _rulebook(body: dict[str, Any]) -> RuleBook:
    data: dict[str, Any] = {"mask_rules": body.get("rules", [])}
    if "detectors" in body:
        data["detectors"] = body["detectors"]
    return RuleBook.from_dict(data)


def handle_post(path: str, body: dict[str, Any]) -> tuple[int, Any]:
    """Route a POST body; returns (status, response data)."""
    if path == "/mask":
        result = _rulebook(body).compute(body.get("text", ""))
        return 200, {
            "masked_text": result.masked_text,
            "placeholder_map": result.placeholder_map,
            "total_replacements": result.total_replacements,
        }

    if path == "/unmask":
        return 200, {"text": unmask(body.get("text", ""), body.get("placeholder_map", {}))}

    if path == "/review/open":
        now = time.time()
        text = body.get("text", "")
        document = Document(name=body.get("name", "contract.txt"), content=text, last_modified=now)
        masking = None
        if body.get("masking"):
            m = body["masking"]
            masking = MaskingResult(
                masked_text=m["masked_text"],
                placeholder_map=dict(m.get("placeholder_map", {})),
                total_replacements=m.get("total_replacements", 0),
            )
        provider = body.get("provider", "chat")
        if "response" in body:
            risks = parse_risk_response(body["response"], provider=provider, now=now)
        else:
            risks = normalize_risks(classify_payload(body.get("risks", [])), provider=provider, now=now)
        session = build_session(document, masking, risks, now, session_id=body.get("review_id"))
        _get_store().save_session(session)
        review = open_session(session)
        review.select_first()
        _remember(session.id, session, review)
        return 200, _review_state(session.id, review)

    review_id = body.get("review_id")
    session, review = _get_review(review_id)

    if path == "/review/state":
        review.tick()
    elif path == "/review/accept":
        review.accept(body.get("risk_id", ""), animate=body.get("animate", True))
    elif path == "/review/ignore":
        review.ignore(body.get("risk_id", ""))
    elif path == "/review/undo":
        review.undo()
    elif path == "/review/navigate":
        review.navigate(body.get("direction", "next"))
    elif path == "/review/select":
        if body.get("level"):
            review.select_first(RiskLevel(body["level"]))
        else:
            review.select(body.get("risk_id"))
    elif path == "/review/finish":
        review.finish_animation()
    elif path == "/review/save":
        session = snapshot_session(session, review, time.time())
        _remember(session.id, session, review)
        _get_store().save_session(session)
    elif path == "/review/export":
        return 200, {"review_id": session.id, "text": review.export_text()}
    elif path == "/review/close":
        _reviews.pop(session.id, None)
        return 200, {"status": "closed", "review_id": session.id}
    else:
        return 404, {"error": "not found"}

    return 200, _review_state(session.id, review, original=bool(body.get("original")))


class ContractGuardHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the contract-guard sidecar."""

    def _read_json(self) -> dict[str, Any]:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        return json.loads(body) if body else {}

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        # Suppress default logging for cleanliness
        pass

    def do_GET(self) -> None:
        if self.path == "/health":
            self._respond(200, {"status": "ok", "open_reviews": len(_reviews)})
        elif self.path == "/sessions":
            self._respond(200, {"sessions": _get_store().list_sessions()})
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        try:
            status, data = handle_post(self.path, self._read_json())
            self._respond(status, data)
        except (UnknownRiskError, UnknownSessionError, UnknownDetectorError) as e:
            self._respond(404, {"error": f"unknown id: {e.args[0] if e.args else ''}"})
        except (ContractGuardError, ValueError) as e:
            self._respond(400, {"error": str(e)})
        except Exception as e:
            logger.exception("request to %s failed", self.path)
            self._respond(500, {"error": str(e)})


def serve(port: int = DEFAULT_PORT, db_path: str = DEFAULT_DB) -> None:
    """Start the contract-guard HTTP sidecar."""
    global _db_path
    _db_path = db_path

    server = HTTPServer(("127.0.0.1", port), ContractGuardHandler)
    print(f"contract-guard sidecar listening on http://127.0.0.1:{port}")
    print(f"  session db: {db_path}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
        server.shutdown()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="contract-guard HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--db", default=DEFAULT_DB)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    serve(port=args.port, db_path=args.db)
