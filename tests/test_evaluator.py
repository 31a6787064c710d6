import asyncio

from presence_guard.evaluator import AbsenceDecision, evaluate_absence


def _eval(now, last_seen=0.0, threshold=5, last_attempt=None, cooldown=30_000, **kw):
    return evaluate_absence(
        now=now,
        last_face_seen_at=last_seen,
        threshold_seconds=threshold,
        last_lock_attempt_at=last_attempt,
        cooldown_ms=cooldown,
        **kw,
    )


def test_within_threshold_never_locks_for_any_cooldown_state():
    for last_attempt in (None, 0.0, -1_000_000.0, 4_000.0):
        result = _eval(4_999, last_attempt=last_attempt)
        assert result.decision is AbsenceDecision.PRESENT


def test_threshold_reached_without_prior_attempt_locks():
    result = _eval(5_000)
    assert result.decision is AbsenceDecision.LOCK
    assert result.absence_seconds == 5


def test_cooldown_blocks_after_recent_attempt():
    result = _eval(10_000, last_attempt=5_000)
    assert result.decision is AbsenceDecision.COOLDOWN


def test_cooldown_elapsed_allows_second_attempt():
    assert _eval(34_999, last_attempt=5_000).decision is AbsenceDecision.COOLDOWN
    assert _eval(35_000, last_attempt=5_000).decision is AbsenceDecision.LOCK


def test_disabled_and_busy_still_report_absence():
    disabled = _eval(12_345, auto_lock_enabled=False)
    assert disabled.decision is AbsenceDecision.DISABLED
    assert disabled.absence_seconds == 12

    busy = _eval(12_345, locking=True)
    assert busy.decision is AbsenceDecision.BUSY


def test_absence_seconds_is_floored():
    assert _eval(1_999).absence_seconds == 1
    assert _eval(999).absence_seconds == 0


def test_scenario_continuous_absence_respects_cooldown(guard, clock, lock_action):
    async def scenario():
        await guard.start()
        session = guard.session
        attempts = {}
        armed_at = {}
        for t in range(1_000, 40_001, 1_000):
            clock.set(t)
            await session.sampler.tick()
            await session.evaluator.tick()
            attempts[t] = lock_action.calls
            armed_at[t] = guard.invoker.state.last_lock_attempt_at
        await guard.stop()
        return attempts, armed_at

    attempts, armed_at = asyncio.run(scenario())

    assert attempts[4_000] == 0
    assert armed_at[4_000] is None
    assert attempts[5_000] == 1
    assert armed_at[5_000] == 5_000
    assert armed_at[34_000] == 5_000
    assert attempts[10_000] == 1
    assert attempts[34_000] == 1
    assert attempts[35_000] == 2
    assert armed_at[35_000] == 35_000
    assert attempts[40_000] == 2
    assert guard.invoker.state.last_lock_attempt_at == 35_000


def test_scenario_positive_sample_restarts_absence_clock(guard, clock, detector, lock_action):
    detector.results = [0, 0, 0, 1]

    async def scenario():
        await guard.start()
        session = guard.session
        for t in (1_000, 2_000, 3_000, 4_000):
            clock.set(t)
            await session.sampler.tick()
        assert session.presence.last_face_seen_at == 4_000

        clock.set(5_000)
        await session.evaluator.tick()
        assert lock_action.calls == 0
        assert session.presence.absence_seconds == 1

        # five seconds after the last sighting the gate opens
        clock.set(9_000)
        await session.evaluator.tick()
        assert lock_action.calls == 1
        await guard.stop()

    asyncio.run(scenario())


def test_disable_mid_absence_then_reenable(guard, clock, lock_action):
    async def scenario():
        await guard.start()
        session = guard.session
        guard.set_auto_lock(False)

        clock.set(8_000)
        await session.evaluator.tick()
        assert lock_action.calls == 0
        assert session.presence.absence_seconds == 8

        clock.set(20_000)
        await session.evaluator.tick()
        assert session.presence.absence_seconds == 20
        assert lock_action.calls == 0

        guard.set_auto_lock(True)
        # last_face_seen_at was not reset by re-enabling
        assert session.presence.last_face_seen_at == 0
        clock.set(21_000)
        await session.evaluator.tick()
        assert lock_action.calls == 1
        await guard.stop()

    asyncio.run(scenario())


def test_evaluator_skips_while_lock_in_flight(guard, clock, lock_action):
    async def scenario():
        lock_action.gate = asyncio.Event()
        await guard.start()
        session = guard.session
        clock.set(6_000)
        first = asyncio.create_task(session.evaluator.tick())
        await asyncio.sleep(0)
        assert guard.invoker.locking

        clock.set(7_000)
        result = await session.evaluator.tick()
        assert result.decision is AbsenceDecision.BUSY

        lock_action.gate.set()
        await first
        await guard.stop()

    asyncio.run(scenario())
    assert lock_action.calls == 1


def test_absence_event_recorded_once(guard, clock):
    async def scenario():
        await guard.start()
        guard.set_auto_lock(False)
        for t in (6_000, 7_000, 8_000):
            clock.set(t)
            await guard.session.evaluator.tick()
        await guard.stop()

    asyncio.run(scenario())
    kinds = [e.kind for e in guard.events()]
    assert kinds.count("presence.absent") == 1
