"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

FIXTURES = Path(__file__).parent / "fixtures" / "docker"


@pytest.fixture
def fixtures_dir():
    """Directory holding sample Dockerfiles and compose files."""
    return FIXTURES


@pytest.fixture
def secure_dockerfile():
    return (FIXTURES / "Dockerfile.secure").read_text(encoding="utf-8")


@pytest.fixture
def insecure_dockerfile():
    return (FIXTURES / "Dockerfile.insecure").read_text(encoding="utf-8")


@pytest.fixture
def multi_stage_dockerfile():
    """Builder stage on alpine, distroless runtime without a tag."""
    return (
        "FROM node:20-alpine AS builder\n"
        "RUN npm install && npm run build\n"
        "FROM gcr.io/distroless/nodejs20\n"
        "COPY --from=builder /app/dist ./dist\n"
        "USER nonroot\n"
        "HEALTHCHECK CMD node healthcheck.js"
    )


@pytest.fixture
def hardened_service():
    """A service that satisfies every Compose and runtime control."""
    return {
        "image": "example/api:1.4.2",
        "cap_drop": ["ALL"],
        "read_only": True,
        "security_opt": ["no-new-privileges:true"],
        "deploy": {"resources": {"limits": {"memory": "256M"}}},
        "pids_limit": 100,
        "restart": "on-failure:5",
    }


@pytest.fixture
def hardened_compose(hardened_service):
    return {"services": {"api": hardened_service}}


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in an empty directory so .containerguard/ never leaks into the repo."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
