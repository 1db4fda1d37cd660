"""Tests for cpi.agentenv: settings assembly, the settings store and the env ISO."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from cpi.agentenv import FileAgentEnvStore, build_agent_env, create_env_iso
from cpi.exceptions import AgentEnvNotFoundError, CloudError


@pytest.fixture
def agent_env(ctx):
    return build_agent_env(
        ctx,
        "agent-1",
        "vm-1",
        "vm-name",
        {"default": {"type": "manual", "ip": "10.0.0.10", "netmask": "255.255.255.0"}},
        {"bosh": {"password": "secret"}},
    )


class TestBuildAgentEnv:
    def test_copies_context_settings(self, ctx, agent_env):
        agent = ctx.config.agent
        assert agent_env.agent_id == "agent-1"
        assert agent_env.vm.id == "vm-1"
        assert agent_env.vm.name == "vm-name"
        assert agent_env.mbus == agent.mbus
        assert agent_env.ntp == agent.ntp
        assert agent_env.blobstore.provider == "local"
        assert agent_env.blobstore.options == agent.blobstore.options
        assert agent_env.disks == {"ephemeral": "1"}
        assert agent_env.networks["default"]["ip"] == "10.0.0.10"
        assert agent_env.env == {"bosh": {"password": "secret"}}

    def test_defaults_for_missing_networks_and_env(self, ctx):
        env = build_agent_env(ctx, "agent-1", "vm-1", "vm-name")
        assert env.networks == {}
        assert env.env == {}

    def test_does_not_share_mutable_state(self, ctx):
        first = build_agent_env(ctx, "a", "vm-1", "n")
        first.disks["persistent"] = {"d": {"id": "d"}}
        first.ntp.append("extra")
        second = build_agent_env(ctx, "a", "vm-2", "n")
        assert second.disks == {"ephemeral": "1"}
        assert "extra" not in second.ntp


class TestFileAgentEnvStore:
    def test_put_then_get_round_trip(self, tmp_path, agent_env):
        store = FileAgentEnvStore(tmp_path / "envs")
        store.put("vm-1", agent_env)
        assert store.get("vm-1") == agent_env

    def test_get_missing_raises(self, tmp_path):
        store = FileAgentEnvStore(tmp_path)
        with pytest.raises(AgentEnvNotFoundError, match="vm-unknown"):
            store.get("vm-unknown")

    def test_put_overwrites(self, tmp_path, ctx, agent_env):
        store = FileAgentEnvStore(tmp_path)
        store.put("vm-1", agent_env)
        updated = build_agent_env(ctx, "agent-2", "vm-1", "vm-name")
        store.put("vm-1", updated)
        assert store.get("vm-1").agent_id == "agent-2"

    def test_file_is_named_after_vm_and_no_temp_files_remain(self, tmp_path, agent_env):
        store = FileAgentEnvStore(tmp_path)
        store.put("vm-1", agent_env)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["vm-1"]
        assert json.loads((tmp_path / "vm-1").read_text())["agent_id"] == "agent-1"

    @pytest.mark.parametrize("vm_id", ["", "..", "a/b"])
    def test_rejects_unsafe_ids(self, tmp_path, agent_env, vm_id):
        store = FileAgentEnvStore(tmp_path)
        with pytest.raises(CloudError, match="Invalid VM id"):
            store.put(vm_id, agent_env)

    def test_defaults_to_temp_dir(self):
        import tempfile

        assert FileAgentEnvStore().directory == Path(tempfile.gettempdir())


class TestCreateEnvIso:
    def test_generates_iso_from_env_file(self, agent_env):
        captured = {}

        def _runner(cmd, **kwargs):
            captured["cmd"] = cmd
            captured["env"] = json.loads(Path(cmd[-1]).read_text(encoding="utf-8"))
            return subprocess.CompletedProcess(cmd, 0, "", "")

        iso_path = create_env_iso(agent_env, runner=_runner)
        try:
            cmd = captured["cmd"]
            assert cmd[0] == "genisoimage"
            assert cmd[1:3] == ["-o", iso_path]
            assert Path(cmd[-1]).name == "env"
            assert captured["env"] == agent_env.to_dict()
            assert not Path(cmd[-1]).parent.exists()
            assert Path(iso_path).exists()
        finally:
            Path(iso_path).unlink(missing_ok=True)

    def test_failure_reports_tool_output_and_cleans_up(self, agent_env):
        captured = {}

        def _runner(cmd, **kwargs):
            captured["cmd"] = cmd
            raise subprocess.CalledProcessError(1, cmd, output="", stderr="genisoimage: Permission denied")

        with pytest.raises(CloudError, match="Failed to generate ISO for agent settings") as exc_info:
            create_env_iso(agent_env, runner=_runner)

        assert "genisoimage: Permission denied" in str(exc_info.value)
        assert not Path(captured["cmd"][-1]).parent.exists()
        assert not Path(captured["cmd"][2]).exists()

    def test_missing_tool_cleans_up(self, agent_env):
        captured = {}

        def _runner(cmd, **kwargs):
            captured["cmd"] = cmd
            raise FileNotFoundError(2, "No such file or directory", "genisoimage")

        with pytest.raises(CloudError, match="Failed to generate ISO"):
            create_env_iso(agent_env, runner=_runner)
        assert not Path(captured["cmd"][-1]).parent.exists()
        assert not Path(captured["cmd"][2]).exists()

    def test_temp_file_failure_removes_env_dir(self, agent_env, tmp_path):
        env_dir = tmp_path / "agent-iso-dir"
        env_dir.mkdir()
        runner_calls = []

        with patch("cpi.agentenv.tempfile.mkdtemp", return_value=str(env_dir)), patch(
            "cpi.agentenv.tempfile.mkstemp", side_effect=OSError(28, "No space left on device")
        ):
            with pytest.raises(CloudError, match="No space left on device"):
                create_env_iso(agent_env, runner=lambda cmd, **kwargs: runner_calls.append(cmd))

        assert not env_dir.exists()
        assert runner_calls == []
