"""Batch ingestion through a pool of worker threads.

Each submission runs create, attach, validate and (optionally) seal on its own
draft. Submissions are independent: one failing, even with an unexpected error, does
not affect the others, and the per-key locks of the draft store keep shared counters
consistent.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sealvault.domain.errors import EvidenceError
from sealvault.domain.model import DraftStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sealvault.domain.context import RequestScope
    from sealvault.domain.drafts import DraftRequest, EvidenceDraftStore
    from sealvault.domain.hashing import JsonPayload
    from sealvault.domain.model import EvidenceDraft, FieldError

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class IngestionSubmission:
    draft: DraftRequest
    payload: JsonPayload
    seal: bool = True
    reference: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class IngestionOutcome:
    reference: str | None
    draft_id: str | None = None
    status: DraftStatus | None = None
    display_id: str | None = None
    work_item_ids: list[str] = field(default_factory=list)
    errors: list[FieldError] = field(default_factory=list)
    failure: str | None = None
    replayed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.failure is None and self.status in (DraftStatus.VALIDATED, DraftStatus.SEALED)


class IngestionWorkerPool:
    def __init__(self, drafts: EvidenceDraftStore, *, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.drafts = drafts
        self.max_workers = max_workers

    def run(
        self, scope: RequestScope, submissions: Sequence[IngestionSubmission]
    ) -> list[IngestionOutcome]:
        """Process ``submissions`` concurrently; outcomes keep the submission order."""

        if not submissions:
            return []
        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(submissions)),
            thread_name_prefix="sealvault-ingest",
        ) as executor:
            futures = [executor.submit(self._process, scope, item) for item in submissions]
            outcomes = [future.result() for future in futures]
        log.info(
            "Ingested %d submission(s): %d succeeded",
            len(outcomes),
            sum(1 for outcome in outcomes if outcome.succeeded),
        )
        return outcomes

    def _process(self, scope: RequestScope, submission: IngestionSubmission) -> IngestionOutcome:
        draft_id: str | None = None
        try:
            draft = self.drafts.create_draft(scope, submission.draft)
            draft_id = draft.draft_id
            attached = self.drafts.attach_payload(scope, draft_id, submission.payload)
            if draft.status is not DraftStatus.DRAFT_CREATED:
                return self._replayed(scope, submission, attached)
            validation = self.drafts.validate(scope, draft_id)
            if not validation.valid or not submission.seal:
                return IngestionOutcome(
                    reference=submission.reference,
                    draft_id=draft_id,
                    status=validation.status,
                    errors=list(validation.errors),
                )
            sealed = self.drafts.seal(scope, draft_id)
        except EvidenceError as exc:
            log.warning("Submission %s failed: %s", submission.reference or draft_id, exc)
            return IngestionOutcome(
                reference=submission.reference, draft_id=draft_id, failure=str(exc)
            )
        except Exception as exc:
            # the rest of the batch still runs; the traceback goes to the log
            log.exception("Submission %s crashed", submission.reference or draft_id)
            return IngestionOutcome(
                reference=submission.reference,
                draft_id=draft_id,
                failure=f"{type(exc).__name__}: {exc}",
            )
        return IngestionOutcome(
            reference=submission.reference,
            draft_id=draft_id,
            status=DraftStatus.SEALED,
            display_id=sealed.record.display_id,
            work_item_ids=[item.work_item_id for item in sealed.work_items],
        )

    def _replayed(
        self, scope: RequestScope, submission: IngestionSubmission, draft: EvidenceDraft
    ) -> IngestionOutcome:
        display_id = None
        if draft.sealed_record_id is not None:
            record = self.drafts.ledger.get_record(scope.tenant_id, draft.sealed_record_id)
            display_id = record.display_id
        log.info("Submission %s replays draft %s", submission.reference, draft.draft_id)
        return IngestionOutcome(
            reference=submission.reference,
            draft_id=draft.draft_id,
            status=draft.status,
            display_id=display_id,
            errors=list(draft.validation_errors),
            replayed=True,
        )
