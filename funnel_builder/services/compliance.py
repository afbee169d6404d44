"""Compliance validators consulted before a generated funnel is served.

The orchestrator treats every validator as a black box returning a
:class:`ComplianceReport`.  Error-severity issues block the result;
warnings are surfaced and ``corrected_content`` (when present) replaces
the funnel.
"""

import logging
import re
from typing import List, Optional, Protocol, Tuple

import httpx
from pydantic import ValidationError

from funnel_builder.core.config import settings
from funnel_builder.core.exceptions import GenerationBackendError, GenerationTimeoutError
from funnel_builder.schemas.common import IssueSeverity
from funnel_builder.schemas.funnel import (
    ComplianceIssue,
    ComplianceReport,
    FunnelStructure,
)

logger = logging.getLogger(__name__)


class ComplianceValidator(Protocol):
    async def validate(self, funnel: FunnelStructure) -> ComplianceReport:
        ...


class PassthroughComplianceValidator:
    """Accepts everything; used when compliance checks are switched off."""

    async def validate(self, funnel: FunnelStructure) -> ComplianceReport:
        return ComplianceReport(is_compliant=True)


# Promises of results, competitor comparisons and pressure selling
_BLOCKED_PHRASES: Tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"guaranteed results?",
        r"100% success",
        r"we never lose",
        r"risk[- ]free",
        r"better than (?:all|any) (?:other|competitor)",
        r"best in the world",
        r"only today",
        r"act now",
        r"last chance",
        r"miracle",
    )
)

_EXCLAMATION_RUN = re.compile(r"!{2,}")


class PhraseComplianceValidator:
    """Local rule-based copy check.

    Blocked promotional phrases are errors.  More than one exclamation
    mark in a title, description or call to action is a warning, and the
    corrected copy keeps only the final ``!``.
    """

    async def validate(self, funnel: FunnelStructure) -> ComplianceReport:
        issues: List[ComplianceIssue] = []

        texts: List[Tuple[str, Optional[str]]] = [
            ("name", funnel.name),
            ("description", funnel.description),
        ]
        for index, step in enumerate(funnel.steps, start=1):
            texts.append((f"steps[{index}].title", step.title))
            texts.append((f"steps[{index}].description", step.description))
            texts.append(
                (f"steps[{index}].cta", step.settings.get("submitButtonText"))
            )

        for field, text in texts:
            if not text:
                continue
            issues.extend(self._check_text(field, str(text)))

        has_warnings = any(i.severity == IssueSeverity.warning for i in issues)
        return ComplianceReport(
            is_compliant=not any(i.severity == IssueSeverity.error for i in issues),
            issues=issues,
            corrected_content=self._correct(funnel) if has_warnings else None,
        )

    @staticmethod
    def _check_text(field: str, text: str) -> List[ComplianceIssue]:
        found: List[ComplianceIssue] = []
        for pattern in _BLOCKED_PHRASES:
            if pattern.search(text):
                found.append(
                    ComplianceIssue(
                        severity=IssueSeverity.error,
                        message=f"{field} uses non-compliant promotional language",
                        field=field,
                    )
                )
        exclamations = text.count("!")
        if exclamations > 1:
            found.append(
                ComplianceIssue(
                    severity=IssueSeverity.warning,
                    message=f"{field} contains too many exclamation marks ({exclamations})",
                    field=field,
                )
            )
        return found

    @staticmethod
    def _tidy(text: Optional[str]) -> Optional[str]:
        if text is None:
            return None
        text = _EXCLAMATION_RUN.sub("!", text)
        extra = text.count("!") - 1
        if extra > 0:
            # keep the final exclamation mark only
            text = text.replace("!", ".", extra)
        return text

    def _correct(self, funnel: FunnelStructure) -> FunnelStructure:
        steps = []
        for step in funnel.steps:
            step_settings = dict(step.settings)
            if isinstance(step_settings.get("submitButtonText"), str):
                step_settings["submitButtonText"] = self._tidy(
                    step_settings["submitButtonText"]
                )
            steps.append(
                step.model_copy(
                    update={
                        "title": self._tidy(step.title),
                        "description": self._tidy(step.description),
                        "settings": step_settings,
                    }
                )
            )
        return funnel.model_copy(
            update={
                "name": self._tidy(funnel.name),
                "description": self._tidy(funnel.description),
                "steps": steps,
            }
        )


class HttpComplianceValidator:
    """Delegates the check to an external compliance service."""

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ) -> None:
        self._url = url
        self._client = client
        self._timeout = timeout

    async def validate(self, funnel: FunnelStructure) -> ComplianceReport:
        payload = {"funnel": funnel.model_dump(mode="json")}
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload)
            response.raise_for_status()
            return ComplianceReport.model_validate(response.json())
        except httpx.TimeoutException:
            logger.warning("Compliance service timed out: %s", self._url)
            raise GenerationTimeoutError("Compliance service timed out")
        except httpx.HTTPError as exc:
            logger.warning("Compliance service failed: %s — %s", self._url, exc)
            raise GenerationBackendError(f"Compliance service failed: {exc}")
        except (ValueError, ValidationError):
            logger.warning("Unreadable compliance report from %s", self._url)
            raise GenerationBackendError("Compliance service returned an unreadable report")


def build_compliance_validator(
    client: Optional[httpx.AsyncClient] = None,
) -> ComplianceValidator:
    """Pick the validator named by ``COMPLIANCE_MODE``."""
    mode = settings.COMPLIANCE_MODE.lower()
    if mode == "remote" and settings.COMPLIANCE_SERVICE_URL:
        return HttpComplianceValidator(settings.COMPLIANCE_SERVICE_URL, client=client)
    if mode == "off":
        return PassthroughComplianceValidator()
    if mode == "remote":
        logger.warning("COMPLIANCE_MODE=remote without COMPLIANCE_SERVICE_URL; using local checks")
    return PhraseComplianceValidator()
