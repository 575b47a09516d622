"""JSON-line bridge between a host UI process and the reference store."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from refview.classify import HighlightProvider, build_classifier
from refview.config import (
    CLASSIFICATION_STRATEGIES,
    PREVIEW_MODES,
    UNRESOLVED_POLICIES,
    CliOverrides,
    ViewConfig,
    load_effective_config,
)
from refview.documents import FileDocumentReader
from refview.errors import MessageError
from refview.events import ReferencesReplaced, parse_message
from refview.logging import AuditEvent, JsonlAuditLogger, sanitize_message, utc_timestamp
from refview.models import (
    Classification,
    FilterState,
    Location,
    Origin,
    TreeNode,
    location_to_payload,
    range_to_payload,
    tree_to_payload,
)
from refview.store import ReferenceStore

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for bridge startup configuration."""
    parser = argparse.ArgumentParser(prog="refview")
    parser.add_argument("--workspace-root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument(
        "--strategy", choices=CLASSIFICATION_STRATEGIES, required=False, default=None
    )
    parser.add_argument("--unresolved", choices=UNRESOLVED_POLICIES, required=False, default=None)
    parser.add_argument("--preview-mode", choices=PREVIEW_MODES, required=False, default=None)
    return parser


class JsonLineHost:
    """View, preview and navigation collaborator that writes JSON-line messages."""

    def __init__(self, out_stream: TextIO) -> None:
        self._out_stream = out_stream

    def emit(self, message: dict[str, object]) -> None:
        """Write one outbound message."""
        self._out_stream.write(f"{json.dumps(message, sort_keys=True)}\n")
        self._out_stream.flush()

    async def update_refs(self, tree: list[TreeNode]) -> None:
        self.emit({"type": "updateRefs", "tree": tree_to_payload(tree)})

    async def classification_result(
        self, location: Location, classification: Classification
    ) -> None:
        self.emit(
            {
                "type": "classificationResult",
                "uri": location.path,
                "range": range_to_payload(location.range),
                "classification": int(classification),
            }
        )

    async def show_error(self, text: str) -> None:
        self.emit({"type": "showError", "text": text})

    async def show_preview(
        self, origin: Origin, locations: Sequence[Location], mode: str
    ) -> None:
        self.emit(
            {
                "type": "showPreview",
                "origin": {
                    "path": origin.path,
                    "position": {
                        "line": origin.position.line,
                        "column": origin.position.column,
                    },
                },
                "locations": [location_to_payload(location) for location in locations],
                "mode": mode,
            }
        )

    async def close_preview(self) -> None:
        self.emit({"type": "closePreview"})

    async def open_location(self, location: Location) -> None:
        self.emit({"type": "openLocation", "location": location_to_payload(location)})


class StdioBridge:
    """Deterministic JSON-line message loop around one ReferenceStore."""

    def __init__(
        self,
        config: ViewConfig,
        out_stream: TextIO,
        oracle: HighlightProvider | None = None,
    ) -> None:
        self._config = config
        self._reader = FileDocumentReader(config.workspace_root)
        self._host = JsonLineHost(out_stream)
        self._audit_logger = JsonlAuditLogger(path=config.data_dir / "audit.jsonl")
        classifier = build_classifier(config.classification, reader=self._reader, oracle=oracle)
        self._store = ReferenceStore(
            classifier,
            view=self._host,
            preview=self._host,
            navigator=self._host,
            filters=FilterState(
                read=config.filters.read,
                write=config.filters.write,
                text=config.filters.text,
            ),
            preview_mode=config.preview.mode,
        )
        self._fallback_message_counter = 0

    @property
    def store(self) -> ReferenceStore:
        return self._store

    @property
    def audit_path(self) -> Path:
        return self._audit_logger.path

    def serve(self, in_stream: TextIO) -> None:
        """Process JSON-line messages until the input stream ends."""
        asyncio.run(self.serve_async(in_stream))

    async def serve_async(self, in_stream: TextIO) -> None:
        for raw_line in in_stream:
            line = raw_line.strip()
            if not line:
                continue
            await self.handle_json_line(line)

    async def handle_json_line(self, raw_line: str) -> bool:
        """Handle a single JSON-line message; return True when it was applied."""
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            message_id = self.next_message_id()
            self._host.emit(
                self.error_message(message_id, "INVALID_JSON", "Message must be valid JSON.")
            )
            self.log_message(
                message_id=message_id,
                message_type="invalid_json",
                message={"raw_line_length": len(raw_line)},
                error_code="INVALID_JSON",
            )
            return False
        return await self.handle_message(payload)

    async def handle_message(self, payload: object) -> bool:
        """Parse and dispatch one decoded message."""
        message = payload if isinstance(payload, dict) else {}
        message_id = self.extract_message_id(message.get("id"))
        type_value = message.get("type")
        message_type = type_value if isinstance(type_value, str) else "invalid_message"
        try:
            event = parse_message(payload)
            if isinstance(event, ReferencesReplaced):
                self._reader.clear()
            await self._store.dispatch(event)
        except MessageError as error:
            self._host.emit(self.error_message(message_id, error.code, error.message))
            self.log_message(message_id, message_type, message, error_code=error.code)
            return False
        except Exception:
            logger.exception("Unhandled error while processing %s", message_type)
            self._host.emit(
                self.error_message(
                    message_id, "INTERNAL_ERROR", "Unhandled error while processing message."
                )
            )
            self.log_message(message_id, message_type, message, error_code="INTERNAL_ERROR")
            return False
        self.log_message(message_id, message_type, message, error_code=None)
        return True

    def extract_message_id(self, message_id: object) -> str:
        """Extract message ID or synthesize a deterministic fallback."""
        if isinstance(message_id, str) and message_id:
            return message_id
        if isinstance(message_id, int):
            return str(message_id)
        return self.next_message_id()

    def next_message_id(self) -> str:
        self._fallback_message_counter += 1
        return f"msg-{self._fallback_message_counter:06d}"

    @staticmethod
    def error_message(message_id: str, code: str, message: str) -> dict[str, object]:
        """Build explicit error message."""
        return {"type": "error", "id": message_id, "error": {"code": code, "message": message}}

    def log_message(
        self,
        message_id: str,
        message_type: str,
        message: dict[str, object],
        error_code: str | None,
    ) -> None:
        """Log one sanitized inbound message."""
        self._audit_logger.append(
            AuditEvent(
                timestamp=utc_timestamp(),
                message_id=message_id,
                message_type=message_type,
                ok=error_code is None,
                error_code=error_code,
                metadata=sanitize_message(message),
            )
        )


def create_bridge(
    workspace_root: str,
    out_stream: TextIO,
    cli_overrides: CliOverrides | None = None,
    oracle: HighlightProvider | None = None,
) -> StdioBridge:
    """Create a bridge from startup inputs."""
    config = load_effective_config(Path(workspace_root).resolve(), overrides=cli_overrides)
    return StdioBridge(config=config, out_stream=out_stream, oracle=oracle)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the reference view bridge process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        strategy=args.strategy,
        unresolved=args.unresolved,
        preview_mode=args.preview_mode,
    )
    bridge = create_bridge(
        workspace_root=args.workspace_root, out_stream=sys.stdout, cli_overrides=overrides
    )
    bridge.serve(in_stream=sys.stdin)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
