from __future__ import annotations

from pathlib import Path


ROOT = Path(__file__).resolve().parents[2]
ORCHESTRATOR_DIR = ROOT / "src/storyroute/core/orchestrator"
ROUTING_DIR = ROOT / "src/storyroute/core/routing"


def test_orchestrator_does_not_import_provider_adapters():
    disallowed: list[str] = []
    for py_file in ORCHESTRATOR_DIR.rglob("*.py"):
        content = py_file.read_text(encoding="utf-8")
        if "providers.azure_openai" in content or "providers.gemini" in content or "httpx" in content:
            disallowed.append(str(py_file))
    assert disallowed == [], f"Orchestrator imported a provider adapter directly: {disallowed}"


def test_orchestrator_has_no_provider_specific_branching():
    content = (ORCHESTRATOR_DIR / "orchestrator.py").read_text(encoding="utf-8")
    assert "ProviderId.GEMINI" not in content
    assert "ProviderId.AZURE_OPENAI" not in content


def test_routing_is_pure():
    disallowed: list[str] = []
    for py_file in ROUTING_DIR.rglob("*.py"):
        content = py_file.read_text(encoding="utf-8")
        if "httpx" in content or "requests." in content or "import random" in content:
            disallowed.append(str(py_file))
    assert disallowed == [], f"Routing module performs I/O or randomness: {disallowed}"
