"""Tests for psutil-backed collection (psutil mocked throughout)."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil
import pytest

import xexplain.core.collector as collector
from xexplain.config import CollectorConfig
from xexplain.core.collector import (
    collect_metrics,
    collect_processes,
    detect_category,
    find_process,
    memory_pressure_for,
    thermal_state_for,
)
from xexplain.models import (
    GIB,
    MIB,
    MemoryPressureLevel,
    ProcessCategory,
    ThermalStateLevel,
)

FAST = CollectorConfig(cpu_sample_interval=0.5, top_processes=15)


def _fake_system(monkeypatch, temps=None, battery=None):
    disk = iter([
        SimpleNamespace(read_bytes=0, write_bytes=0),
        SimpleNamespace(read_bytes=10 * MIB, write_bytes=5 * MIB),
    ])
    net = iter([
        SimpleNamespace(bytes_recv=0, bytes_sent=0),
        SimpleNamespace(bytes_recv=MIB, bytes_sent=0),
    ])
    ps = collector.psutil
    monkeypatch.setattr(ps, "cpu_percent", lambda interval=None, percpu=False: [40.0, 60.0])
    monkeypatch.setattr(ps, "cpu_times_percent", lambda interval=None: SimpleNamespace(user=30.0, system=20.0))
    monkeypatch.setattr(
        ps, "virtual_memory", lambda: SimpleNamespace(percent=80.0, used=12 * GIB, total=16 * GIB)
    )
    monkeypatch.setattr(ps, "swap_memory", lambda: SimpleNamespace(used=256 * MIB))
    monkeypatch.setattr(ps, "disk_usage", lambda path: SimpleNamespace(percent=55.0))
    monkeypatch.setattr(ps, "disk_io_counters", lambda: next(disk))
    monkeypatch.setattr(ps, "net_io_counters", lambda: next(net))
    monkeypatch.setattr(ps, "cpu_freq", lambda: SimpleNamespace(current=2400.0, max=3600.0))
    monkeypatch.setattr(ps, "sensors_temperatures", lambda: temps or {}, raising=False)
    monkeypatch.setattr(ps, "sensors_fans", lambda: {}, raising=False)
    monkeypatch.setattr(ps, "sensors_battery", lambda: battery, raising=False)


def _proc(pid, name, cpu, rss=100 * MIB, username="alice"):
    proc = MagicMock()
    proc.pid = pid
    proc.info = {
        "pid": pid,
        "name": name,
        "username": username,
        "ppid": 1,
        "num_threads": 4,
        "memory_info": SimpleNamespace(rss=rss),
    }
    proc.cpu_percent.side_effect = [0.0, cpu]
    proc.io_counters.return_value = SimpleNamespace(read_bytes=1000, write_bytes=500)
    return proc


class TestDetectCategory:
    @pytest.mark.parametrize(
        "name,category",
        [
            ("Google Chrome Helper", ProcessCategory.BROWSER),
            ("ollama", ProcessCategory.AIML),
            ("python3.12", ProcessCategory.DEVELOPER),
            ("Code Helper (Renderer)", ProcessCategory.DEVELOPER),
            ("com.docker.backend", ProcessCategory.CONTAINER),
            ("Slack", ProcessCategory.COMMUNICATION),
            ("Spotify", ProcessCategory.MEDIA),
            ("kernel_task", ProcessCategory.SYSTEM),
            ("zsh", ProcessCategory.OTHER),
        ],
    )
    def test_keywords(self, name, category):
        assert detect_category(name) == category


class TestLevelMapping:
    @pytest.mark.parametrize(
        "percent,level",
        [
            (50.0, MemoryPressureLevel.NORMAL),
            (75.0, MemoryPressureLevel.WARNING),
            (89.9, MemoryPressureLevel.WARNING),
            (90.0, MemoryPressureLevel.CRITICAL),
        ],
    )
    def test_memory(self, percent, level):
        assert memory_pressure_for(percent) == level

    @pytest.mark.parametrize(
        "temp,level",
        [
            (0.0, ThermalStateLevel.NOMINAL),
            (70.0, ThermalStateLevel.FAIR),
            (85.0, ThermalStateLevel.SERIOUS),
            (95.0, ThermalStateLevel.CRITICAL),
        ],
    )
    def test_thermal(self, temp, level):
        assert thermal_state_for(temp) == level


class TestCollectMetrics:
    def test_snapshot(self, monkeypatch):
        temps = {
            "coretemp": [SimpleNamespace(current=72.0), SimpleNamespace(current=88.0)],
            "nvme": [SimpleNamespace(current=99.0)],
        }
        battery = SimpleNamespace(percent=40, power_plugged=False)
        _fake_system(monkeypatch, temps=temps, battery=battery)

        m = collect_metrics(FAST)

        assert m.cpu_usage == 50.0
        assert [c.usage for c in m.core_usages] == [40.0, 60.0]
        assert m.cpu_user_usage == 30.0
        assert m.memory_pressure == MemoryPressureLevel.WARNING
        assert m.memory_total_bytes == 16 * GIB
        assert m.swap_used_bytes == 256 * MIB
        assert m.disk_read_rate == 20.0
        assert m.disk_write_rate == 10.0
        assert m.network_download_rate == 2.0
        assert m.disk_usage_percent == 55.0
        assert m.cpu_temperature == 88.0
        assert m.thermal_state == ThermalStateLevel.SERIOUS
        assert m.cpu_frequency_mhz == 2400.0
        assert m.max_frequency_mhz == 3600.0
        assert m.battery_level == 40.0
        assert m.is_on_battery is True

    def test_no_sensors(self, monkeypatch):
        _fake_system(monkeypatch)
        monkeypatch.delattr(collector.psutil, "sensors_temperatures", raising=False)
        monkeypatch.delattr(collector.psutil, "sensors_battery", raising=False)
        m = collect_metrics(FAST)
        assert m.cpu_temperature == 0.0
        assert m.thermal_state == ThermalStateLevel.NOMINAL
        assert m.battery_level is None
        assert m.is_on_battery is False

    def test_disk_usage_unreadable(self, monkeypatch):
        _fake_system(monkeypatch)

        def boom(path):
            raise OSError("no such mount")

        monkeypatch.setattr(collector.psutil, "disk_usage", boom)
        assert collect_metrics(FAST).disk_usage_percent == 0.0

    def test_no_disk_counters(self, monkeypatch):
        _fake_system(monkeypatch)
        monkeypatch.setattr(collector.psutil, "disk_io_counters", lambda: None)
        m = collect_metrics(FAST)
        assert m.disk_read_rate == 0.0
        assert m.disk_write_rate == 0.0


class TestCollectProcesses:
    @patch("xexplain.core.collector.time.sleep")
    @patch("xexplain.core.collector.psutil.process_iter")
    def test_sorted_and_limited(self, mock_iter, mock_sleep):
        mock_iter.return_value = [
            _proc(1, "launchd", 1.0, username="root"),
            _proc(2, "Google Chrome", 75.0),
            _proc(3, "node", 30.0),
        ]
        procs = collect_processes(CollectorConfig(cpu_sample_interval=0.5, top_processes=2))

        mock_sleep.assert_called_once_with(0.5)
        assert [p.pid for p in procs] == [2, 3]
        chrome = procs[0]
        assert chrome.category == ProcessCategory.BROWSER
        assert chrome.memory_bytes == 100 * MIB
        assert chrome.disk_read_bytes == 1000
        assert chrome.thread_count == 4
        assert chrome.is_system_process is False

    @patch("xexplain.core.collector.time.sleep")
    @patch("xexplain.core.collector.psutil.process_iter")
    def test_system_users(self, mock_iter, mock_sleep):
        mock_iter.return_value = [
            _proc(1, "launchd", 1.0, username="root"),
            _proc(2, "mds", 2.0, username="_spotlight"),
        ]
        procs = collect_processes(FAST)
        assert all(p.is_system_process for p in procs)

    @patch("xexplain.core.collector.time.sleep")
    @patch("xexplain.core.collector.psutil.process_iter")
    def test_vanished_and_denied(self, mock_iter, mock_sleep):
        gone = _proc(1, "short-lived", 0.0)
        gone.cpu_percent.side_effect = [0.0, psutil.NoSuchProcess(1)]
        denied = _proc(2, "secret", 0.0)
        denied.cpu_percent.side_effect = psutil.AccessDenied(2)
        ok = _proc(3, "zsh", 5.0)
        mock_iter.return_value = [gone, denied, ok]

        procs = collect_processes(FAST)
        assert [p.pid for p in procs] == [3]

    @patch("xexplain.core.collector.time.sleep")
    @patch("xexplain.core.collector.psutil.process_iter")
    def test_io_counters_denied(self, mock_iter, mock_sleep):
        proc = _proc(1, "zsh", 5.0)
        proc.io_counters.side_effect = psutil.AccessDenied(1)
        mock_iter.return_value = [proc]
        snap = collect_processes(FAST)[0]
        assert snap.disk_read_bytes == 0
        assert snap.disk_write_bytes == 0


class TestFindProcess:
    @patch("xexplain.core.collector.psutil.Process")
    def test_found(self, mock_cls):
        proc = MagicMock()
        proc.cpu_percent.return_value = 42.0
        proc.as_dict.return_value = {
            "pid": 77,
            "name": "Xcode",
            "username": "alice",
            "ppid": 1,
            "num_threads": 12,
            "memory_info": SimpleNamespace(rss=2 * GIB),
        }
        proc.io_counters.return_value = SimpleNamespace(read_bytes=0, write_bytes=0)
        mock_cls.return_value = proc

        snap = find_process(77, FAST)

        assert snap.pid == 77
        assert snap.cpu_usage == 42.0
        assert snap.memory_gb == 2.0
        assert snap.category == ProcessCategory.DEVELOPER
        proc.cpu_percent.assert_called_once_with(interval=0.5)

    @pytest.mark.parametrize(
        "error",
        [psutil.NoSuchProcess(999), psutil.AccessDenied(999), psutil.ZombieProcess(999)],
    )
    @patch("xexplain.core.collector.psutil.Process")
    def test_unreadable(self, mock_cls, error):
        mock_cls.side_effect = error
        assert find_process(999, FAST) is None
