"""
Process-wide services and the FastAPI dependencies that hand them out.

``FormServices`` owns the only state shared between requests: the rate
limiter buckets and one inflight gate per form. ``app.main`` creates one
instance at startup and stores it on ``app.state``; tests swap in a fresh
instance with ``app.dependency_overrides[get_services]``.
"""

from dataclasses import dataclass, field
from typing import AsyncIterator

import httpx
from fastapi import Request

from app.services.inflight import InflightGate
from app.services.rate_limit import RateLimiter

MAX_INFLIGHT = 10


def _gate(name: str) -> InflightGate:
    return InflightGate(name, MAX_INFLIGHT)


@dataclass
class FormServices:
    rate_limiter: RateLimiter = field(default_factory=RateLimiter)
    quote_gate: InflightGate = field(default_factory=lambda: _gate("quote"))
    assessment_gate: InflightGate = field(default_factory=lambda: _gate("assessment"))
    callback_gate: InflightGate = field(default_factory=lambda: _gate("callback"))


def get_services(request: Request) -> FormServices:
    return request.app.state.services


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """
    Yield an httpx client for the duration of one request.

    Attempt deadlines are enforced by ``send_with_retry``; the client's own
    timeout only needs to be at least as long.
    """
    async with httpx.AsyncClient(timeout=httpx.Timeout(10.0)) as client:
        yield client
