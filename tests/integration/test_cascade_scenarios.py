"""
Integration tests: end-to-end cascades through SwitchLinkApp.

Uses the file-backed store so persistence across restarts is exercised.
"""

import asyncio

import pytest

from switchlink.bootstrap.app import AppState, SwitchLinkApp
from switchlink.bootstrap.config import EngineConfig, StorageConfig, SwitchLinkConfig
from switchlink.core.models import SwitchConfig
from switchlink.errors import UnknownSwitchError
from switchlink.kernel.switch import RequestOutcome
from switchlink.storage.state_store import FileStateStore


def _make_app(tmp_path, switches):
    config = SwitchLinkConfig(
        storage=StorageConfig(persist_dir=str(tmp_path / "persist")),
        engine=EngineConfig(bounce_delay_ms=10, restore_delay_ms=10),
        switches=[SwitchConfig.from_dict(s) for s in switches],
    )
    return SwitchLinkApp(config=config)


async def _states(app):
    return {row["name"]: row["persisted"] for row in await app.status()}


class TestOnCascade:
    """Both dependencies must be on before the dependent activates."""

    @pytest.mark.asyncio
    async def test_dependent_activates_after_last_dependency(self, tmp_path):
        app = _make_app(tmp_path, [
            {"name": "A"},
            {"name": "B"},
            {"name": "C", "dependsOn": ["A", "B"]},
        ])
        await app.start()

        first = await app.request("A", True)
        assert first.cascade.skipped == {"C": "dependencies not satisfied"}
        assert await _states(app) == {"A": True, "B": None, "C": None}

        second = await app.request("B", True)
        assert second.cascade.updated == ["C"]
        assert await _states(app) == {"A": True, "B": True, "C": True}
        assert app.context.get_switch("C").current_state() is True

        await app.stop()


class TestOffCascade:
    """Turning every dependsOff switch off turns the dependent off."""

    @pytest.mark.asyncio
    async def test_dependent_deactivates_after_last_dependency(self, tmp_path):
        store = FileStateStore(tmp_path / "persist")
        for name in ("A", "B", "C"):
            await store.set(name, True)

        app = _make_app(tmp_path, [
            {"name": "A"},
            {"name": "B"},
            {"name": "C", "dependsOff": ["A", "B"]},
        ])
        await app.start()

        await app.request("A", False)
        assert await _states(app) == {"A": False, "B": True, "C": True}

        result = await app.request("B", False)
        assert result.cascade.updated == ["C"]
        assert await _states(app) == {"A": False, "B": False, "C": False}
        assert app.context.get_switch("C").current_state() is False

        await app.stop()


class TestMissingDependency:
    """A never-set dependency stalls auto-activation but not direct control."""

    @pytest.mark.asyncio
    async def test_direct_set_is_not_blocked(self, tmp_path):
        app = _make_app(tmp_path, [
            {"name": "D", "dependsOn": ["E"]},
            {"name": "F", "dependsOn": ["D", "E"]},
        ])
        await app.start()

        result = await app.request("D", True)

        assert result.outcome is RequestOutcome.TRANSITIONED
        assert result.cascade.skipped == {"F": "dependencies not satisfied"}
        assert await _states(app) == {"D": True, "F": None}

        await app.stop()


class TestRestart:
    """Persisted state survives a restart without re-propagating."""

    @pytest.mark.asyncio
    async def test_start_with_undecodable_record(self, tmp_path):
        store = FileStateStore(tmp_path / "persist")
        await store.set("A", True)
        for path in (tmp_path / "persist").glob("*.json"):
            path.write_bytes(b"\xff\xfe\x00garbage")

        app = _make_app(tmp_path, [{"name": "A"}, {"name": "C", "dependsOn": ["A"]}])
        context = await app.start()

        assert context.get_switch("A").current_state() is False
        result = await app.request("A", True)
        assert result.cascade.updated == ["C"]

        await app.stop()

    @pytest.mark.asyncio
    async def test_restart_restores_without_cascade(self, tmp_path):
        switches = [
            {"name": "A"},
            {"name": "C", "dependsOn": ["A"]},
        ]
        first = _make_app(tmp_path, switches)
        await first.start()
        await first.request("A", True)
        await first.request("C", False)
        await first.stop()

        second = _make_app(tmp_path, switches)
        context = await second.start()
        await context.scheduler.drain()

        assert context.get_switch("A").current_state() is True
        assert context.get_switch("C").current_state() is False
        assert await _states(second) == {"A": True, "C": False}
        assert context.host.get_value("A", "On") is True

        result = await second.request("A", True)
        assert result.outcome is RequestOutcome.BOUNCED

        await second.stop()
        assert context.state is AppState.STOPPED


class TestConcurrency:
    """Concurrent requests converge on a consistent persisted state."""

    @pytest.mark.asyncio
    async def test_concurrent_dependencies(self, tmp_path):
        app = _make_app(tmp_path, [
            {"name": "A"},
            {"name": "B"},
            {"name": "C", "dependsOn": ["A", "B"]},
        ])
        await app.start()

        results = await asyncio.gather(
            app.request("A", True),
            app.request("B", True),
        )

        assert all(r.success for r in results)
        assert await _states(app) == {"A": True, "B": True, "C": True}
        assert app.context.get_switch("C").current_state() is True

        await app.stop()

    @pytest.mark.asyncio
    async def test_rapid_toggles_end_consistent(self, tmp_path):
        app = _make_app(tmp_path, [{"name": "A"}])
        await app.start()

        await asyncio.gather(*(app.request("A", i % 2 == 0) for i in range(6)))
        await app.context.scheduler.drain()

        entity = app.context.get_switch("A")
        assert (await _states(app))["A"] is entity.current_state()

        await app.stop()


class TestTopologyChecks:
    """Build-time warnings for suspicious configurations."""

    def test_cycle_warned(self, tmp_path, caplog):
        app = _make_app(tmp_path, [
            {"name": "A", "dependsOn": ["B"]},
            {"name": "B", "dependsOn": ["A"]},
        ])
        with caplog.at_level("WARNING", logger="bootstrap.app"):
            app.build()
        assert "Dependency cycle" in caplog.text

    def test_unknown_reference_warned(self, tmp_path, caplog):
        app = _make_app(tmp_path, [{"name": "D", "dependsOn": ["E"]}])
        with caplog.at_level("WARNING", logger="bootstrap.app"):
            app.build()
        assert "'E'" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_request(self, tmp_path):
        app = _make_app(tmp_path, [{"name": "A"}])
        with pytest.raises(UnknownSwitchError):
            await app.request("Nope", True)
