from __future__ import annotations

import socket

import pytest

from http_checker.errors import ResolutionError
from http_checker.resolver import resolve


@pytest.mark.asyncio
async def test_resolve_sorts_and_collapses_duplicates(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_lookup(hostname: str) -> list[str]:
        assert hostname == "svc.test"
        return ["10.0.0.2", "10.0.0.1", "10.0.0.2"]

    monkeypatch.setattr("http_checker.resolver._lookup", fake_lookup)

    assert await resolve("svc.test") == ["10.0.0.1", "10.0.0.2"]


@pytest.mark.asyncio
async def test_resolve_wraps_lookup_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_lookup(hostname: str) -> list[str]:
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr("http_checker.resolver._lookup", failing_lookup)

    with pytest.raises(ResolutionError) as info:
        await resolve("missing.test")
    assert info.value.hostname == "missing.test"
    assert isinstance(info.value.cause, socket.gaierror)


@pytest.mark.asyncio
async def test_resolve_empty_answer_is_an_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def empty_lookup(hostname: str) -> list[str]:
        return []

    monkeypatch.setattr("http_checker.resolver._lookup", empty_lookup)

    with pytest.raises(ResolutionError):
        await resolve("svc.test")


@pytest.mark.asyncio
async def test_resolve_rejects_blank_hostname() -> None:
    with pytest.raises(ResolutionError):
        await resolve("")


@pytest.mark.asyncio
async def test_resolve_ip_literal() -> None:
    assert await resolve("127.0.0.1") == ["127.0.0.1"]
