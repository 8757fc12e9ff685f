# pipeline.py
"""
The ask pipeline as a small state machine.

    CLASSIFY_INTENT -> FETCH_RECORDS -> SCORE -> DECIDE -> FORMAT -> DONE
                \\            \\          \\        \\
                 +------------+----------+---------+--> FALLBACK -> DONE

Any stage may move to FALLBACK, either by returning it (no records, no
confident match) or by raising. FALLBACK is the single place that talks to
the LLM and merges DB suggestions with its answer. If FALLBACK itself raises,
the request ends with an error answer; it never raises out of `run`.
"""
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel

from .aliases import DEFAULT_ALIAS_TABLE, AliasTable
from .config import Settings, get_settings
from .db import RecordStore, StoreUnavailable
from .decision import Decision, Outcome, Suggestion, decide_ranked, score_candidates
from .fetcher import FetchResult, fetch_for_intent
from .formatter import format_record, format_suggestions
from .llm import LLMClient
from .query import GREETING_ANSWER, ParsedQuery, is_trivial, parse_question
from .records import COLLECTIONS, INTENT_TABLES
from .scoring import ScoredCandidate
from .text import normalize_text

log = logging.getLogger(__name__)

ERROR_ANSWER = "Sorry, something went wrong while answering. Please try again."


class Stage(str, Enum):
    CLASSIFY_INTENT = "classify_intent"
    FETCH_RECORDS = "fetch_records"
    SCORE = "score"
    DECIDE = "decide"
    FORMAT = "format"
    FALLBACK = "fallback"
    DONE = "done"


class AskResult(BaseModel):
    answer: Optional[str] = None
    source: str
    matched_alias: Optional[str] = None
    suggestions: Optional[List[Suggestion]] = None
    debug: Optional[Dict[str, Any]] = None


class AskContext:
    def __init__(self, question: str):
        self.question = question
        self.query: Optional[ParsedQuery] = None
        self.fetched: Optional[FetchResult] = None
        self.role_ranked: Optional[List[ScoredCandidate]] = None
        self.ranked: List[ScoredCandidate] = []
        self.decision: Optional[Decision] = None
        self.result: Optional[AskResult] = None
        self.trace: List[str] = []
        self.notes: List[str] = []

    def note(self, message: str) -> None:
        self.notes.append(message)

    @property
    def llm_question(self) -> str:
        return self.query.expanded if self.query else self.question

    @property
    def matched_alias(self) -> Optional[str]:
        return self.query.matched_alias if self.query else None

    def debug(self, **extra: Any) -> Dict[str, Any]:
        out: Dict[str, Any] = {"stages": list(self.trace)}
        if self.query:
            out["intent"] = self.query.intent
            out["tokens"] = self.query.tokens
            if self.query.department:
                out["department"] = self.query.department
            out.update(self.query.debug)
        if self.fetched:
            out["fetched"] = len(self.fetched.records)
            out["filters"] = self.fetched.filters
            if self.fetched.errors:
                out["fetch_errors"] = self.fetched.errors
        if self.decision:
            out["decision"] = self.decision.reason
            if self.decision.best:
                out["top_score"] = self.decision.best.score
                out["second_score"] = self.decision.second_score
        if self.notes:
            out["notes"] = list(self.notes)
        out.update(extra)
        return out


class AskPipeline:
    def __init__(
        self,
        store: Optional[RecordStore],
        llm: LLMClient,
        settings: Optional[Settings] = None,
        aliases: AliasTable = DEFAULT_ALIAS_TABLE,
    ):
        self.store = store
        self.llm = llm
        self.settings = settings or get_settings()
        self.aliases = aliases
        self._handlers: Dict[Stage, Callable[[AskContext], Stage]] = {
            Stage.CLASSIFY_INTENT: self._classify,
            Stage.FETCH_RECORDS: self._fetch,
            Stage.SCORE: self._score,
            Stage.DECIDE: self._decide,
            Stage.FORMAT: self._format,
            Stage.FALLBACK: self._fallback,
        }

    def run(self, question: str) -> AskResult:
        if is_trivial(normalize_text(question)):
            return AskResult(answer=GREETING_ANSWER, source="generic")

        ctx = AskContext(question)
        stage = Stage.CLASSIFY_INTENT
        while stage is not Stage.DONE:
            ctx.trace.append(stage.value)
            log.debug("ask stage=%s", stage.value)
            try:
                stage = self._handlers[stage](ctx)
            except StoreUnavailable as exc:
                log.warning("Record store unavailable: %s", exc)
                ctx.note(f"data store unavailable: {exc}")
                stage = Stage.FALLBACK
            except Exception as exc:
                if stage is Stage.FALLBACK:
                    log.exception("Fallback failed")
                    ctx.result = AskResult(
                        answer=ERROR_ANSWER,
                        source="error",
                        matched_alias=ctx.matched_alias,
                        debug=ctx.debug(error=str(exc)),
                    )
                    break
                log.exception("Stage %s failed", stage.value)
                ctx.note(f"{stage.value} failed: {exc}")
                stage = Stage.FALLBACK
        return ctx.result

    # --- stages ---

    def _classify(self, ctx: AskContext) -> Stage:
        ctx.query = parse_question(ctx.question, self.aliases)
        return Stage.FETCH_RECORDS

    def _fetch(self, ctx: AskContext) -> Stage:
        q = ctx.query
        ctx.fetched = fetch_for_intent(
            self.store, q.intent, self.settings.fetch_limit, department=q.department
        )
        if not ctx.fetched.records:
            ctx.note("no records in collection")
            return Stage.FALLBACK
        return Stage.SCORE

    def _score(self, ctx: AskContext) -> Stage:
        q = ctx.query
        ctx.role_ranked, ctx.ranked = score_candidates(
            ctx.fetched.records,
            q.tokens,
            role_query=q.role_query,
            department_hint=q.department,
        )
        return Stage.DECIDE

    def _decide(self, ctx: AskContext) -> Stage:
        tables = INTENT_TABLES.get(ctx.query.intent, INTENT_TABLES["people"])
        threshold = max(COLLECTIONS[t].threshold for t in tables)
        ctx.decision = decide_ranked(ctx.ranked, threshold, ctx.role_ranked)
        if ctx.decision.outcome is Outcome.CONFIDENT:
            return Stage.FORMAT
        return Stage.FALLBACK

    def _format(self, ctx: AskContext) -> Stage:
        best = ctx.decision.best
        ctx.result = AskResult(
            answer=format_record(best.record),
            source=best.record.label,
            matched_alias=ctx.matched_alias,
            debug=ctx.debug(role_match=ctx.decision.role_match, coverage=best.coverage),
        )
        return Stage.DONE

    def _fallback(self, ctx: AskContext) -> Stage:
        llm = self.llm.ask(ctx.llm_question)
        suggestions = ctx.decision.suggestions if ctx.decision else []
        debug = ctx.debug(llm_provider=llm.provider, **({"llm": llm.debug} if llm.debug else {}))

        if suggestions and not llm.meaningful:
            # no usable LLM answer, reply with the closest records
            ctx.result = AskResult(
                answer=format_suggestions(suggestions),
                source=ctx.decision.best.record.label,
                matched_alias=ctx.matched_alias,
                suggestions=suggestions,
                debug=debug,
            )
            return Stage.DONE

        ctx.result = AskResult(
            answer=llm.answer,
            source=llm.source,
            matched_alias=ctx.matched_alias,
            suggestions=suggestions or None,
            debug=debug,
        )
        return Stage.DONE
