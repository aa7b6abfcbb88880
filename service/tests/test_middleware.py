import logging

import httpx
import pytest
from fastapi import FastAPI

from layout_manager.core.config import Settings
from layout_manager.core.middleware import RequestIDAndAuditMiddleware


def build_app(**middleware_options):
    app = FastAPI()
    app.add_middleware(RequestIDAndAuditMiddleware, **middleware_options)

    @app.post("/admin/layouts/{layout_id}/activate")
    async def activate(layout_id: str):
        return {"layout_id": layout_id}

    @app.get("/admin/layouts")
    async def list_layouts():
        return []

    @app.post("/public/ping")
    async def ping():
        return {}

    return app


async def send(app, method, path, **kwargs):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, path, **kwargs)


def audit_lines(caplog):
    return [r.getMessage() for r in caplog.records if r.getMessage().startswith("audit ")]


async def test_mutating_admin_request_is_audited(caplog):
    caplog.set_level(logging.INFO, logger="layout_manager.core.middleware")
    response = await send(build_app(), "POST", "/admin/layouts/main/activate", headers={"X-Request-ID": "req-7"})

    assert response.headers["X-Request-ID"] == "req-7"
    lines = audit_lines(caplog)
    assert len(lines) == 1
    assert lines[0].startswith("audit request_id=req-7 method=POST path=/admin/layouts/main/activate status=200")
    assert "elapsed_ms=" in lines[0]


@pytest.mark.parametrize("method, path", [("GET", "/admin/layouts"), ("POST", "/public/ping")])
async def test_reads_and_other_paths_are_not_audited(caplog, method, path):
    caplog.set_level(logging.INFO, logger="layout_manager.core.middleware")
    response = await send(build_app(), method, path)

    assert response.status_code == 200
    assert response.headers["X-Request-ID"]
    assert audit_lines(caplog) == []


async def test_audit_prefixes_can_be_overridden(caplog):
    caplog.set_level(logging.INFO, logger="layout_manager.core.middleware")
    await send(build_app(audit_prefixes=["/public"]), "POST", "/public/ping")
    await send(build_app(audit_prefixes=["/public"]), "POST", "/admin/layouts/main/activate")

    lines = audit_lines(caplog)
    assert len(lines) == 1
    assert "path=/public/ping" in lines[0]


def test_audit_prefixes_setting_accepts_comma_separated_text():
    assert Settings(AUDIT_PATH_PREFIXES="/admin, /mcp,").AUDIT_PATH_PREFIXES == ["/admin", "/mcp"]
    assert Settings().AUDIT_PATH_PREFIXES == ["/admin", "/mcp"]
