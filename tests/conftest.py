"""Shared fixtures for transition screening tests.

Provider calls never leave the process: tests that exercise the gateway
patch `litellm.completion` as imported by the client module and answer with
canned chat-completion responses.
"""

import json
import threading
from types import SimpleNamespace
from typing import Callable, Optional

import pytest

from transition_screen.llm.llm_client import ProviderConfig, ProviderGateway
from transition_screen.schemas.common import SafeguardObjective, Sector
from transition_screen.schemas.evaluation import Dimension
from transition_screen.schemas.project import EmissionsData, ProjectInput


def chat_response(content: Optional[str]) -> SimpleNamespace:
    """Minimal stand-in for a litellm ModelResponse."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletion:
    """Records completion() calls and answers them with a handler.

    The handler receives the call kwargs and returns the message content, or
    raises to simulate a provider failure. Calls may arrive from worker threads.
    """

    def __init__(self, handler: Callable[[dict], Optional[str]]):
        self.handler = handler
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def __call__(self, **kwargs):
        with self._lock:
            self.calls.append(kwargs)
        return chat_response(self.handler(kwargs))

    @property
    def api_keys(self) -> list[str]:
        return [call["api_key"] for call in self.calls]


@pytest.fixture
def fake_completion(monkeypatch):
    """Install a FakeCompletion in place of litellm.completion.

    Usage:
        fake = fake_completion(lambda kwargs: '{"ok": true}')
    """

    def _install(handler: Callable[[dict], Optional[str]]) -> FakeCompletion:
        fake = FakeCompletion(handler)
        monkeypatch.setattr("transition_screen.llm.llm_client.completion", fake)
        return fake

    return _install


@pytest.fixture
def provider():
    return ProviderConfig(name="test", api_base="https://llm.example.invalid/v1", api_key="key-test", model="test-model")


@pytest.fixture
def gateway(provider):
    return ProviderGateway((provider,), timeout_seconds=5, seed=42)


@pytest.fixture
def project_factory():
    """Build a ProjectInput from a clean, well-documented energy project.

    The defaults fire no red flag and yield six positive indicators; pass
    field overrides to introduce specific issues.
    """

    def _make(**overrides) -> ProjectInput:
        fields = dict(
            project_name="Lake Turkana Solar Hybrid",
            country="Kenya",
            sector=Sector.ENERGY,
            project_type="Solar PV with battery storage",
            description=(
                "Construction of a 50 MW solar PV plant with 20 MWh battery storage "
                "replacing diesel generators at three mini-grids."
            ),
            total_cost=60_000_000,
            debt_amount=40_000_000,
            equity_amount=20_000_000,
            current_emissions=EmissionsData(scope1=100_000, scope2=20_000),
            target_emissions=EmissionsData(scope1=50_000, scope2=10_000),
            target_year=2030,
            transition_strategy=(
                "Aligned with the SBTi 1.5C pathway and the Paris Agreement, "
                "with a 50% cut in Scope 1 and 2 emissions by 2030."
            ),
            has_published_plan=True,
            third_party_verification=True,
        )
        fields.update(overrides)
        return ProjectInput(**fields)

    return _make


@pytest.fixture
def clean_project(project_factory) -> ProjectInput:
    return project_factory()


def component_json(
    dimension: Dimension,
    score: int,
    confidence: int = 80,
    findings: Optional[list[dict]] = None,
    component: Optional[str] = None,
) -> str:
    """Model output for one dimension in the shape the rubric prompts request."""
    if findings is None:
        findings = [
            {
                "criterion": "Target realism",
                "maxPoints": 25,
                "points": score,
                "status": "adequate",
                "evidence": "Targets are stated with a baseline year",
            }
        ]
    return json.dumps(
        {
            "component": component or dimension.value,
            "componentName": dimension.display_name,
            "maxScore": 25,
            "score": score,
            "confidence": confidence,
            "findings": findings,
            "overallAssessment": f"{dimension.display_name} assessed",
            "recommendations": ["Publish interim milestones"],
        }
    )


def safeguard_json(
    scores: Optional[dict[str, int]] = None,
    status: str = "no_harm",
    incompatible: bool = False,
    recommendations: Optional[list[str]] = None,
) -> str:
    """Model output for the safeguard rubric; every objective defaults to 4/4."""
    scores = scores or {}
    criteria = [
        {
            "objective": objective.value,
            "objectiveName": objective.display_name,
            "status": status,
            "score": scores.get(objective.value, 4),
            "evidence": "Addressed in the environmental management plan",
            "recommendation": "Keep monitoring",
        }
        for objective in SafeguardObjective
    ]
    return json.dumps(
        {
            "criteria": criteria,
            "isFundamentallyIncompatible": incompatible,
            "incompatibilityReason": "Fossil extraction" if incompatible else None,
            "summary": "DNSH screen complete",
            "keyRisks": [],
            "recommendations": recommendations if recommendations is not None else ["Publish water data"],
        }
    )


@pytest.fixture
def make_component_json():
    return component_json


@pytest.fixture
def make_safeguard_json():
    return safeguard_json
