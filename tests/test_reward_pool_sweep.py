from __future__ import annotations

import pytest

from conftest import ALICE, BOB, OWNER, TOKEN, Env
from stakeledger.ledger.types import PoolState
from stakeledger.runtime import reward_pool
from stakeledger.runtime.errors import InsufficientAllowance, RewardPoolExhausted, Unauthorized, ZeroAmount


def test_fund_adds_supply_and_moves_funds(env: Env) -> None:
    before = env.custody
    env.program.fund(OWNER, 10**9)

    assert env.program.reward_pool_supply == 10**9
    assert env.custody == before + 10**9
    assert env.program.pool.total_funded == 10**9


def test_fund_requires_admin_and_positive_amount(env: Env) -> None:
    with pytest.raises(Unauthorized):
        env.program.fund(ALICE, 10**9)
    with pytest.raises(ZeroAmount):
        env.program.fund(OWNER, 0)
    assert env.program.reward_pool_supply == 0
    assert env.custody == 0


def test_fund_custody_failure_leaves_pool_untouched(env: Env) -> None:
    env.asset.approve(OWNER, env.program.holder, 10)
    with pytest.raises(InsufficientAllowance):
        env.program.fund(OWNER, 11)
    assert env.program.reward_pool_supply == 0
    assert env.custody == 0


def test_sweep_recovers_tokens_sent_directly(env: Env) -> None:
    env.at(env.start + 1).program.stake(ALICE, 7 * TOKEN)
    env.program.fund(OWNER, 100 * TOKEN)

    stray = 50 * TOKEN
    env.asset.transfer(OWNER, env.program.holder, stray)

    before = env.balance(OWNER)
    receipt = env.program.sweep_excess(OWNER)

    assert receipt["amount"] == stray
    assert env.balance(OWNER) - before == stray
    assert env.custody == env.program.total_staked + env.program.reward_pool_supply


def test_sweep_without_excess_is_noop(env: Env) -> None:
    env.at(env.start).program.stake(ALICE, 7 * TOKEN)
    env.program.fund(OWNER, TOKEN)
    events_before = len(env.program.events)

    receipt = env.program.sweep_excess(OWNER)

    assert receipt["amount"] == 0
    assert receipt["noop"] is True
    assert env.custody == 8 * TOKEN
    assert len(env.program.events) == events_before


def test_sweep_requires_admin(env: Env) -> None:
    env.asset.transfer(OWNER, env.program.holder, TOKEN)
    with pytest.raises(Unauthorized):
        env.program.sweep_excess(BOB)
    assert env.custody == TOKEN


def test_sweep_never_touches_principal_or_rewards_after_payouts(env: Env) -> None:
    env.at(env.start)
    env.program.stake(ALICE, 20 * TOKEN)
    env.program.stake(BOB, 30 * TOKEN)
    env.program.fund(OWNER, TOKEN)

    env.at(env.start + 1_000_000)
    env.program.claim(ALICE)
    env.program.withdraw(BOB)
    env.asset.transfer(OWNER, env.program.holder, 3)

    env.program.sweep_excess(OWNER)
    assert env.custody == env.program.total_staked + env.program.reward_pool_supply
    assert env.program.total_staked == 20 * TOKEN


def test_claim_fails_when_pool_cannot_cover_reward(env: Env) -> None:
    env.at(env.start).program.stake(ALICE, 10 * TOKEN)
    env.at(env.start + 100_000)
    rec_before = env.program.record(ALICE)
    bal_before = env.balance(ALICE)

    with pytest.raises(RewardPoolExhausted):
        env.program.claim(ALICE)
    with pytest.raises(RewardPoolExhausted):
        env.program.withdraw(ALICE)

    assert env.program.record(ALICE) == rec_before
    assert env.balance(ALICE) == bal_before
    assert env.program.total_staked == 10 * TOKEN


def test_pool_bookkeeping_directly() -> None:
    pool = PoolState()
    reward_pool.fund(pool, 100)
    assert reward_pool.disburse(pool, 0) == 0
    assert reward_pool.disburse(pool, 60) == 60
    assert pool == PoolState(supply=40, total_funded=100, total_paid=60)

    with pytest.raises(RewardPoolExhausted):
        reward_pool.disburse(pool, 41)

    assert reward_pool.excess(pool, custody_balance=100, total_staked=50) == 10
    assert reward_pool.excess(pool, custody_balance=80, total_staked=50) == 0
