"""Tests for the command-line entry point."""

import json

import httpx
import pytest

import run
from smartcart.config import config
from smartcart.offline.storage import OfflineStorage


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        run.build_parser().parse_args([])


def test_parser_options():
    args = run.build_parser().parse_args(["deals", "--retailer", "3", "--category", "Produce"])

    assert (args.command, args.retailer, args.category) == ("deals", 3, "Produce")


def test_unit_command_prints_suggestions(capsys):
    assert run.main(["unit", "Bananas", "--retailer", "target"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output[0]["category"] == "Produce"
    assert output[0]["unit"] == "LB"
    assert output[0]["quantities"] == [1, 2, 3, 5]
    assert "Good & Gather Bananas" in output[0]["retailNames"]


def test_clear_offline_removes_store(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "data_dir", str(tmp_path))
    store = tmp_path / config.offline_store_file
    store.write_text("{}")

    assert run.main(["clear-offline"]) == 0
    assert not store.exists()


def test_invalid_config_exits_with_error(monkeypatch):
    monkeypatch.setattr(config, "api_base_url", "ftp://nowhere")

    assert run.main(["lists"]) == 1


@pytest.fixture
def backend(monkeypatch, tmp_path, make_client):
    """Point the CLI at the mocked backend and a temporary data dir."""
    import smartcart.data

    monkeypatch.setattr(smartcart.data, "SmartCartClient", lambda: make_client())
    monkeypatch.setattr(config, "data_dir", str(tmp_path))


def test_list_command_prints_and_caches_list(backend, recorder, capsys):
    items = [{"id": 1, "productName": "Milk", "isCompleted": False}]
    recorder.add(
        "GET",
        "/api/shopping-lists/5",
        httpx.Response(200, json={"id": 5, "name": "Weekly", "items": items}),
    )

    assert run.main(["list", "5"]) == 0

    assert json.loads(capsys.readouterr().out)["items"] == items
    assert OfflineStorage().get_shopping_list(5).items == items


def test_list_command_falls_back_to_cached_copy(backend, recorder, capsys):
    OfflineStorage().save_shopping_list(5, [{"id": 1, "productName": "Milk"}])
    recorder.add("GET", "/api/shopping-lists/5", httpx.ConnectError("down"))

    assert run.main(["list", "5"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["isOffline"] is True
    assert output["items"] == [{"id": 1, "productName": "Milk"}]


def test_list_command_without_data_fails(backend, recorder):
    recorder.add("GET", "/api/shopping-lists/5", httpx.ConnectError("down"))

    assert run.main(["list", "5"]) == 1


def test_dashboard_command_prints_batched_data(backend, recorder, capsys):
    recorder.add(
        "POST",
        "/api/batch",
        httpx.Response(
            200,
            json={
                "responses": [
                    {"id": "shopping-lists", "status": 200, "data": [{"id": 1, "userId": 2, "name": "Weekly"}]},
                    {"id": "user-profile", "status": 401, "error": "login required"},
                    {"id": "monthly-savings", "status": 200, "data": {"savings": 12.5}},
                ]
            },
        ),
    )

    assert run.main(["dashboard"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert [lst["name"] for lst in output["shopping_lists"]] == ["Weekly"]
    assert output["user_profile"] is None
    assert output["monthly_savings"] == 12.5
    assert len(recorder.requests) == 1


def test_categorize_remote_uses_server(backend, recorder, capsys):
    recorder.add(
        "POST",
        "/api/products/batch-categorize",
        httpx.Response(
            200,
            json=[
                {"category": {"category": "Produce", "confidence": 0.9}},
                {"category": "Dairy & Eggs"},
            ],
        ),
    )

    assert run.main(["categorize", "Kale", "Milk", "--remote"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert [(r["category"], r["confidence"]) for r in output] == [
        ("Produce", 0.9),
        ("Dairy & Eggs", 0),
    ]
    sent = json.loads(recorder.requests[0].content)
    assert [p["productName"] for p in sent["products"]] == ["Kale", "Milk"]
