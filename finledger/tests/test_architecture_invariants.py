from __future__ import annotations

import inspect

from fastapi.routing import APIRoute

from finledger.app.main import app
from finledger.app.messages import balance, core, goals, requests
from finledger.app.norma import intervals, ledger, rules_engine
from finledger.app.services import (
    categorize_service,
    message_service,
    payment_request_service,
    saving_goal_service,
)


def _routes() -> list[tuple[str, str]]:
    return sorted(
        (method, route.path)
        for route in app.routes
        if isinstance(route, APIRoute)
        for method in route.methods
    )


def test_every_route_is_versioned() -> None:
    assert all(path.startswith("/api/v1/") for _, path in _routes())


def test_route_table_has_no_duplicates() -> None:
    routes = _routes()
    assert len(routes) == len(set(routes))


def test_analytics_core_has_no_database_access() -> None:
    for module in (ledger, intervals, rules_engine, core, balance, goals, requests):
        source = inspect.getsource(module)
        assert "sqlalchemy" not in source, module.__name__
        assert "finledger.app.db" not in source, module.__name__


def test_pipeline_stages_do_not_call_each_other() -> None:
    stages = {
        "categorize_service": categorize_service,
        "saving_goal_service": saving_goal_service,
        "payment_request_service": payment_request_service,
        "message_service": message_service,
    }
    for name, module in stages.items():
        source = inspect.getsource(module)
        for other in stages:
            if other != name:
                assert other not in source, f"{name} references {other}"
        assert "pipeline" not in source, name
