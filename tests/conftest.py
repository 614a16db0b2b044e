"""Shared fixtures for the service tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import evaluator
import lexer
import parser


@pytest.fixture
def lexer_client() -> TestClient:
    return TestClient(lexer.app)


@pytest.fixture
def parser_client() -> TestClient:
    return TestClient(parser.app)


@pytest.fixture
def evaluator_client() -> TestClient:
    return TestClient(evaluator.app)


@pytest.fixture
def forward_to_evaluator(monkeypatch, evaluator_client):
    """Route parser-svc's outgoing requests.post calls to the in-process evaluator app."""

    def fake_post(url, json=None, timeout=None):
        return evaluator_client.post("/" + url.rsplit("/", 1)[-1], json=json)

    monkeypatch.setattr(parser.requests, "post", fake_post)
