"""Error message normalisation for listing failures.

S3-compatible services report failures differently. The normaliser tries an
ordered chain of rules against a raised error; the first rule whose
predicate matches and whose extractor yields a message wins. Errors no rule
recognises fall back to their own text.

New vendor quirks are added with ``ErrorNormalizer.register``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

MINIO_ERROR_HEADER = "X-Minio-Error-Desc"


@dataclass(frozen=True)
class NormalizationRule:
    """A predicate/extractor pair.

    Attributes:
        name: Identifier used in logs.
        predicate: Decides whether the rule applies to an error.
        extractor: Produces the message, or None to defer to later rules.

    """

    name: str
    predicate: Callable[[BaseException], bool]
    extractor: Callable[[BaseException], str | None]


def iter_causes(error: BaseException) -> Iterator[BaseException]:
    """Yield ``error`` followed by its explicit and implicit causes."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def find_client_error(error: BaseException) -> ClientError | None:
    """Return the first botocore ClientError in the cause chain."""
    for item in iter_causes(error):
        if isinstance(item, ClientError):
            return item
    return None


def response_headers(error: ClientError) -> Mapping[str, str]:
    """Return the HTTP headers of a storage service error response."""
    metadata: dict[str, Any] = error.response.get("ResponseMetadata") or {}
    headers = metadata.get("HTTPHeaders") or {}
    return headers


def _header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def _has_minio_header(error: BaseException) -> bool:
    client_error = find_client_error(error)
    if client_error is None:
        return False
    return _header(response_headers(client_error), MINIO_ERROR_HEADER) is not None


def _minio_message(error: BaseException) -> str | None:
    client_error = find_client_error(error)
    if client_error is None:
        return None
    value = _header(response_headers(client_error), MINIO_ERROR_HEADER)
    if value is None:
        return None
    return value.strip().strip('"') or None


MINIO_ERROR_RULE = NormalizationRule(
    name="minio-error-desc",
    predicate=_has_minio_header,
    extractor=_minio_message,
)


def fallback_message(error: BaseException) -> str:
    """Return the generic text of an error."""
    text = str(error)
    return text if text else type(error).__name__


class ErrorNormalizer:
    """Ordered chain of message extraction rules."""

    def __init__(self, rules: list[NormalizationRule] | None = None) -> None:
        self._rules: list[NormalizationRule] = (
            list(rules) if rules is not None else [MINIO_ERROR_RULE]
        )
        self._lock = threading.Lock()

    @property
    def rules(self) -> tuple[NormalizationRule, ...]:
        """Return the rules in evaluation order."""
        return tuple(self._rules)

    def register(self, rule: NormalizationRule, *, first: bool = False) -> None:
        """Add a rule at the end of the chain, or at the front if ``first``."""
        with self._lock:
            rules = list(self._rules)
            if first:
                rules.insert(0, rule)
            else:
                rules.append(rule)
            self._rules = rules
        logger.debug("Registered error normalisation rule: %s", rule.name)

    def describe(self, error: BaseException) -> str:
        """Return the best available message for ``error``."""
        for rule in self._rules:
            if not rule.predicate(error):
                continue
            message = rule.extractor(error)
            if message is not None:
                logger.debug("Error message taken from rule %s", rule.name)
                return message
        return fallback_message(error)


def default_normalizer() -> ErrorNormalizer:
    """Create a normaliser with the built-in vendor rules."""
    return ErrorNormalizer()
