"""Sender adapters that hand validated envelopes to JetStream-style publishers."""
from __future__ import annotations

import inspect
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from .envelope import DEFAULT_CONTENT_TYPE, Envelope, Header

_SUBJECT_PREFIX = "pacts"


def build_subject(header: Header, prefix: str | None = None) -> str:
    """Return the publish subject for an envelope header."""

    tokens = [prefix or _SUBJECT_PREFIX, *header.identity()]
    return ".".join(token for token in tokens if token)


def message_headers(envelope: Envelope, message_id: Optional[str] = None) -> Dict[str, str]:
    """Return transport headers for deduplication and content negotiation."""

    return {
        "Nats-Msg-Id": message_id or str(uuid.uuid4()),
        "Content-Type": envelope.header.content_type or DEFAULT_CONTENT_TYPE,
    }


class EnvelopePublisher:
    """Publish envelopes as CBOR through any object exposing ``publish``.

    Instances are callable so they can be passed directly as the ``sender`` of
    :meth:`pacts_kit.service.PactsService.send_validated_data`.
    """

    def __init__(self, publisher, *, subject_prefix: str = _SUBJECT_PREFIX) -> None:
        self._publisher = publisher
        self._subject_prefix = subject_prefix

    def _prepare(self, envelope: Envelope) -> tuple[str, bytes, Dict[str, str]]:
        subject = build_subject(envelope.header, prefix=self._subject_prefix)
        return subject, envelope.to_cbor(), message_headers(envelope)

    def publish(self, envelope: Envelope) -> str:
        subject, encoded, headers = self._prepare(envelope)
        result = self._publisher.publish(subject, encoded, headers=headers, timestamp=time.time())
        if result is False:
            raise RuntimeError(f"Failed to publish envelope {headers['Nats-Msg-Id']}")
        return headers["Nats-Msg-Id"]

    __call__ = publish

    async def publish_async(self, envelope: Envelope) -> str:
        subject, encoded, headers = self._prepare(envelope)
        result = self._publisher.publish(subject, encoded, headers=headers, timestamp=time.time())
        if inspect.isawaitable(result):
            result = await result
        if result is False:
            raise RuntimeError(f"Failed to publish envelope {headers['Nats-Msg-Id']}")
        return headers["Nats-Msg-Id"]


@dataclass
class PublishedMessage:
    """Container representing a message stored by :class:`InMemoryJetStream`."""

    subject: str
    data: bytes
    headers: Dict[str, str]
    timestamp: float

    def envelope(self) -> Envelope:
        return Envelope.from_cbor(self.data)


class InMemoryJetStream:
    """In-process publisher with ``Nats-Msg-Id`` deduplication."""

    def __init__(self) -> None:
        self._messages: List[PublishedMessage] = []
        self._deduplication: Dict[str, PublishedMessage] = {}

    @property
    def messages(self) -> List[PublishedMessage]:
        return list(self._messages)

    def publish(
        self,
        subject: str,
        payload: bytes,
        *,
        headers: Optional[Dict[str, str]] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        headers = headers or {}
        timestamp = timestamp if timestamp is not None else 0.0
        message_id = headers.get("Nats-Msg-Id")
        if message_id is not None and message_id in self._deduplication:
            return False

        message = PublishedMessage(subject, payload, headers, timestamp)
        self._messages.append(message)
        if message_id is not None:
            self._deduplication[message_id] = message
        return True

    def subjects(self) -> List[str]:
        return [message.subject for message in self._messages]


__all__ = [
    "EnvelopePublisher",
    "InMemoryJetStream",
    "PublishedMessage",
    "build_subject",
    "message_headers",
]
