from __future__ import annotations

from fastapi import Request

from app.config import Settings
from app.observability.metrics import MetricRegistry
from app.simulator.simulator import OutcomeSimulator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_metric_registry(request: Request) -> MetricRegistry:
    return request.app.state.metrics


def get_simulator(request: Request) -> OutcomeSimulator:
    return request.app.state.simulator
