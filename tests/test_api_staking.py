from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import ALICE, BOB, GENESIS, ONE_PERCENT, OWNER, TOKEN, YEAR
from stakeledger.api.app import create_app
from stakeledger.runtime.clock import ManualClock
from stakeledger.runtime.custody import AssetCustody, MemoryAsset
from stakeledger.runtime.executor import StakingExecutor
from stakeledger.runtime.program import StakingProgram

START = GENESIS + 10


def _client(monkeypatch: pytest.MonkeyPatch, *, mode: str = "dev") -> tuple[TestClient, StakingExecutor]:
    monkeypatch.setenv("STAKELEDGER_MODE", mode)
    monkeypatch.delenv("STAKELEDGER_FAUCET", raising=False)

    clock = ManualClock(GENESIS)
    asset = MemoryAsset()
    program = StakingProgram(
        admin=OWNER,
        custody=AssetCustody(asset, holder="STAKING_PROGRAM"),
        clock=clock,
        rate=ONE_PERCENT,
        start=START,
        end=START + YEAR,
    )
    ex = StakingExecutor(program=program, asset=asset, clock=clock, mode=mode)
    for acct in (OWNER, ALICE):
        ex.mint(acct, 1000 * TOKEN)
        ex.approve(acct, 1000 * TOKEN)

    app = create_app(boot_runtime=False)
    app.state.executor = ex
    return TestClient(app), ex


def _as(acct: str) -> dict:
    return {"X-Account": acct}


def test_stake_claim_withdraw_over_http(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)
    ex.clock.set(START)

    r = client.post("/v1/admin/fund", json={"amount": 100 * TOKEN}, headers=_as(OWNER))
    assert r.status_code == 200, r.text
    r = client.post("/v1/stake", json={"amount": 10 * TOKEN}, headers=_as(ALICE))
    assert r.status_code == 200, r.text
    assert r.json()["receipt"]["principal"] == 10 * TOKEN

    ex.clock.advance(YEAR // 2)
    pending = client.get(f"/v1/accounts/{ALICE}/pending-reward").json()["pending_reward"]
    assert pending > 0

    r = client.post("/v1/claim", headers=_as(ALICE))
    assert r.status_code == 200
    assert r.json()["receipt"]["reward"] == pending

    r = client.post("/v1/withdraw", headers=_as(ALICE))
    assert r.json()["receipt"]["principal"] == 10 * TOKEN

    state = client.get(f"/v1/accounts/{ALICE}").json()["state"]
    assert state["principal"] == 0
    assert state["balance"] == 1000 * TOKEN + pending

    events = client.get("/v1/events", params={"limit": 2}).json()["events"]
    assert [e["applied"] for e in events] == ["CLAIM", "WITHDRAW"]

    prog = client.get("/v1/program").json()
    assert prog["program"]["total_staked"] == 0
    assert prog["custody_balance"] == 100 * TOKEN - pending


def test_domain_errors_map_to_envelopes(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)

    r = client.post("/v1/stake", json={"amount": TOKEN}, headers=_as(ALICE))
    assert r.status_code == 409
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "window_closed"
    assert body["error"]["message"] == "staking_not_started"
    assert body["error"]["details"]["start"] == START

    ex.clock.set(START)
    r = client.post("/v1/stake", json={"amount": 0}, headers=_as(ALICE))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_amount"

    r = client.post("/v1/stake", json={"amount": 2000 * TOKEN}, headers=_as(ALICE))
    assert r.status_code == 402
    assert r.json()["error"]["code"] == "custody_failed"

    r = client.post("/v1/claim", headers=_as(BOB))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "nothing_to_claim"

    r = client.post("/v1/admin/rate/propose", json={"rate": 2 * ONE_PERCENT}, headers=_as(ALICE))
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "forbidden"

    r = client.post("/v1/admin/rate/commit", headers=_as(OWNER))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "identical_rate"


def test_missing_caller_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ex = _client(monkeypatch)
    r = client.post("/v1/claim")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "missing_caller"


def test_rate_governance_over_http(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)

    r = client.post("/v1/admin/rate/propose", json={"rate": 2 * ONE_PERCENT}, headers=_as(OWNER))
    assert r.status_code == 200
    assert client.get("/v1/program").json()["program"]["proposed_rate"] == 2 * ONE_PERCENT

    r = client.post("/v1/admin/rate/commit", headers=_as(OWNER))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "timelock_not_elapsed"

    ex.clock.advance(86_400)
    r = client.post("/v1/admin/rate/commit", headers=_as(OWNER))
    assert r.status_code == 200
    assert client.get("/v1/program").json()["program"]["current_rate"] == 2 * ONE_PERCENT


def test_admin_sweep_and_transfer(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)
    ex.asset.transfer(OWNER, ex.program.holder, 5 * TOKEN)

    r = client.post("/v1/admin/sweep", headers=_as(OWNER))
    assert r.json()["receipt"]["amount"] == 5 * TOKEN

    r = client.post("/v1/admin/sweep", headers=_as(OWNER))
    assert r.json()["receipt"]["noop"] is True

    r = client.post("/v1/admin/transfer", json={"new_admin": BOB}, headers=_as(OWNER))
    assert r.status_code == 200
    assert client.get("/v1/program").json()["program"]["admin"] == BOB


def test_faucet_follows_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ex = _client(monkeypatch, mode="prod")
    r = client.post("/v1/asset/mint", json={"to": BOB, "amount": TOKEN})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "faucet_disabled"

    client, _ex = _client(monkeypatch, mode="dev")
    r = client.post("/v1/asset/mint", json={"to": BOB, "amount": TOKEN})
    assert r.status_code == 200
    assert client.get(f"/v1/asset/balances/{BOB}").json()["balance"] == TOKEN

    r = client.post("/v1/asset/approve", json={"amount": TOKEN}, headers=_as(BOB))
    assert r.json()["receipt"]["spender"] == "STAKING_PROGRAM"


def test_holder_account_cannot_act_over_http(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)
    ex.clock.set(START)
    client.post("/v1/stake", json={"amount": 10 * TOKEN}, headers=_as(ALICE))
    client.post("/v1/admin/fund", json={"amount": TOKEN}, headers=_as(OWNER))

    holder = {"X-Account": "STAKING_PROGRAM"}
    r = client.post("/v1/asset/approve", json={"amount": 10 * TOKEN}, headers=holder)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_caller"

    r = client.post("/v1/stake", json={"amount": 10 * TOKEN}, headers=holder)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_caller"

    r = client.post("/v1/admin/transfer", json={"new_admin": "STAKING_PROGRAM"}, headers=_as(OWNER))
    assert r.status_code == 400

    prog = client.get("/v1/program").json()
    assert prog["program"]["total_staked"] == 10 * TOKEN
    assert prog["custody_balance"] >= prog["program"]["total_staked"] + prog["program"]["reward_pool"]["supply"]


def test_malformed_body_uses_error_envelope(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)
    ex.clock.set(START)

    r = client.post("/v1/stake", json={"amount": "x"}, headers=_as(ALICE))
    assert r.status_code == 400
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "invalid_request"
    assert body["error"]["details"]["errors"][0]["loc"] == ["body", "amount"]

    r = client.post("/v1/admin/rate/propose", json={}, headers=_as(OWNER))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_request"


def test_events_can_be_filtered_by_account(monkeypatch: pytest.MonkeyPatch) -> None:
    client, ex = _client(monkeypatch)
    ex.clock.set(START)
    client.post("/v1/stake", json={"amount": TOKEN}, headers=_as(ALICE))
    client.post("/v1/stake", json={"amount": TOKEN}, headers=_as(OWNER))

    events = client.get("/v1/events", params={"account": ALICE}).json()["events"]
    assert [e["caller"] for e in events] == [ALICE]
