"""Tests for environment variable resolution."""

from __future__ import annotations

import threading
import time

import pytest

from apm_profiler import env
from apm_profiler.errors import E_FAIL, ProfilerError
from apm_profiler.levels import LogLevel, LogTarget

KEY = "ELASTIC_APM_PROFILER_TEST_FLAG"


@pytest.mark.parametrize("raw", ["true", "TRUE", "True", "1"])
def test_read_bool_true_values(monkeypatch, raw: str) -> None:
    monkeypatch.setenv(KEY, raw)
    assert env.read_bool(KEY, False) is True


@pytest.mark.parametrize("raw", ["false", "FALSE", "False", "0"])
def test_read_bool_false_values(monkeypatch, raw: str) -> None:
    monkeypatch.setenv(KEY, raw)
    assert env.read_bool(KEY, True) is False


@pytest.mark.parametrize("raw", ["yes", "", "2", " true", "enabled"])
@pytest.mark.parametrize("default", [True, False])
def test_read_bool_other_values_use_default(
    monkeypatch, raw: str, default: bool
) -> None:
    monkeypatch.setenv(KEY, raw)
    assert env.read_bool(KEY, default) is default


@pytest.mark.parametrize("default", [True, False])
def test_read_bool_unset_uses_default(default: bool) -> None:
    assert env.read_bool(KEY, default) is default


def test_read_bool_logs_key_value_and_default(monkeypatch, log_records) -> None:
    monkeypatch.setenv(KEY, "maybe")
    env.read_bool(KEY, True)

    info = [r for r in log_records if r["level"].name == "INFO"]
    assert len(info) == 1
    assert KEY in info[0]["message"]
    assert "maybe" in info[0]["message"]
    assert "True" in info[0]["message"]


def test_read_bool_logs_when_unset(log_records) -> None:
    env.read_bool(KEY, False)
    assert any(KEY in r["message"] and "False" in r["message"] for r in log_records)


# -- log level ----------------------------------------------------------------


def test_read_log_level_unset_returns_default() -> None:
    assert env.read_log_level(KEY, LogLevel.ERROR) is LogLevel.ERROR


@pytest.mark.parametrize("raw", ["verbose", "warning", "", "5", " debug", "info "])
def test_read_log_level_invalid_returns_default(monkeypatch, raw: str) -> None:
    monkeypatch.setenv(KEY, raw)
    assert env.read_log_level(KEY, LogLevel.INFO) is LogLevel.INFO


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("off", LogLevel.OFF),
        ("Error", LogLevel.ERROR),
        ("WARN", LogLevel.WARN),
        ("info", LogLevel.INFO),
        ("debug", LogLevel.DEBUG),
        ("trace", LogLevel.TRACE),
    ],
)
def test_read_log_level_valid_names(monkeypatch, raw: str, expected: LogLevel) -> None:
    monkeypatch.setenv(KEY, raw)
    assert env.read_log_level(KEY, LogLevel.WARN) is expected


def test_read_log_level_from_env_var(monkeypatch) -> None:
    monkeypatch.setenv(env.ELASTIC_APM_PROFILER_LOG_ENV_VAR, "debug")
    assert env.read_log_level_from_env_var(LogLevel.WARN) is LogLevel.DEBUG


def test_log_levels_are_ordered() -> None:
    assert (
        LogLevel.OFF
        < LogLevel.ERROR
        < LogLevel.WARN
        < LogLevel.INFO
        < LogLevel.DEBUG
        < LogLevel.TRACE
    )


# -- log targets --------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("file;stdout", {LogTarget.FILE, LogTarget.STDOUT}),
        ("STDOUT", {LogTarget.STDOUT}),
        ("Stdout;bogus;", {LogTarget.STDOUT}),
        ("file; stdout", {LogTarget.FILE}),
        (" stdout", {LogTarget.FILE}),
        ("", {LogTarget.FILE}),
        ("bogus", {LogTarget.FILE}),
        (";;", {LogTarget.FILE}),
    ],
)
def test_read_log_targets(monkeypatch, raw: str, expected) -> None:
    monkeypatch.setenv(env.ELASTIC_APM_PROFILER_LOG_TARGETS_ENV_VAR, raw)
    assert env.read_log_targets_from_env_var() == frozenset(expected)


def test_read_log_targets_unset_defaults_to_file() -> None:
    assert env.read_log_targets_from_env_var() == frozenset({LogTarget.FILE})


# -- other flags --------------------------------------------------------------


def test_enable_inlining_uses_caller_default() -> None:
    assert env.enable_inlining(True) is True
    assert env.enable_inlining(False) is False


def test_enable_inlining_reads_variable(monkeypatch) -> None:
    monkeypatch.setenv(env.ELASTIC_APM_PROFILER_ENABLE_INLINING, "0")
    assert env.enable_inlining(True) is False


def test_disable_optimizations(monkeypatch) -> None:
    assert env.disable_optimizations() is False
    monkeypatch.setenv(env.ELASTIC_APM_PROFILER_DISABLE_OPTIMIZATIONS, "true")
    assert env.disable_optimizations() is True


# -- cached flags -------------------------------------------------------------


def test_process_wide_flags_keys_and_defaults() -> None:
    assert env.LOG_IL.key == "ELASTIC_APM_PROFILER_LOG_IL"
    assert env.LOG_IL.default is False
    assert env.CALLTARGET_ENABLED.key == "ELASTIC_APM_PROFILER_CALLTARGET_ENABLED"
    assert env.CALLTARGET_ENABLED.default is True


def test_cached_flag_uses_default_when_unset() -> None:
    assert env.CachedFlag(env.ELASTIC_APM_PROFILER_LOG_IL_ENV_VAR, False).value is False
    assert (
        env.CachedFlag(env.ELASTIC_APM_PROFILER_CALLTARGET_ENABLED_ENV_VAR, True).value
        is True
    )


def test_cached_flag_ignores_later_environment_changes(monkeypatch) -> None:
    flag = env.CachedFlag(KEY, False)
    monkeypatch.setenv(KEY, "true")
    assert not flag.resolved
    assert flag.value is True
    assert flag.resolved

    monkeypatch.setenv(KEY, "false")
    assert flag.value is True
    monkeypatch.delenv(KEY)
    assert bool(flag) is True


def test_cached_flag_resolves_once_under_concurrent_access(monkeypatch) -> None:
    calls = []

    def slow_read_bool(key: str, default: bool) -> bool:
        calls.append(key)
        time.sleep(0.05)
        return len(calls) == 1

    monkeypatch.setattr(env, "read_bool", slow_read_bool)
    flag = env.CachedFlag(KEY, False)
    barrier = threading.Barrier(8)
    results = []

    def reader() -> None:
        barrier.wait()
        results.append(flag.value)

    threads = [threading.Thread(target=reader) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == [KEY]
    assert results == [True] * 8


# -- diagnostics --------------------------------------------------------------


def test_get_env_vars_lists_recognised_prefixes(monkeypatch) -> None:
    monkeypatch.setenv("ELASTIC_APM_PROFILER_LOG", "debug")
    monkeypatch.setenv("CORECLR_ENABLE_PROFILING", "1")
    monkeypatch.setenv("COR_PROFILER", "{FA65FE15-F085-4681-9B20-95E04F6C03CC}")
    monkeypatch.setenv("UNRELATED_VAR", "x")
    monkeypatch.setenv("MY_ELASTIC_THING", "x")

    assert env.get_env_vars() == "\n".join(
        [
            '  CORECLR_ENABLE_PROFILING="1"',
            '  COR_PROFILER="{FA65FE15-F085-4681-9B20-95E04F6C03CC}"',
            '  ELASTIC_APM_PROFILER_LOG="debug"',
        ]
    )


def test_get_env_vars_empty_when_nothing_set() -> None:
    assert env.get_env_vars() == ""


def test_native_profiler_file_on_windows() -> None:
    assert env.get_native_profiler_file("Windows") == "elastic_apm_profiler.dll"


def test_native_profiler_file_prefers_pointer_width_variable(monkeypatch) -> None:
    monkeypatch.setattr(env, "pointer_width", lambda: "64")
    monkeypatch.setenv("CORECLR_PROFILER_PATH", "/opt/generic.so")
    monkeypatch.setenv("CORECLR_PROFILER_PATH_64", "/opt/profiler64.so")
    monkeypatch.setenv("CORECLR_PROFILER_PATH_32", "/opt/profiler32.so")

    assert env.get_native_profiler_file("Linux") == "/opt/profiler64.so"


def test_native_profiler_file_falls_back_to_generic_variable(monkeypatch) -> None:
    monkeypatch.setattr(env, "pointer_width", lambda: "32")
    monkeypatch.setenv("CORECLR_PROFILER_PATH", "/opt/generic.so")
    monkeypatch.setenv("CORECLR_PROFILER_PATH_64", "/opt/profiler64.so")

    assert env.get_native_profiler_file("Linux") == "/opt/generic.so"


def test_native_profiler_file_missing_raises() -> None:
    with pytest.raises(ProfilerError) as excinfo:
        env.get_native_profiler_file("Linux")
    assert excinfo.value.code == E_FAIL
