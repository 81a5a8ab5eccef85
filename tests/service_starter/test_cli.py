"""
Tests for the command-line interface.
"""

import json
import logging
import sys
import textwrap

import pytest

from starter_core import ConfigurationError, OrchestratorExistsError
from service_starter import ExitCode, OrchestratorConfig, OrchestratorFactory, Unit, setup_logging
from service_starter.adapters import HttpHealthProbe
from service_starter.cli import (
    async_main,
    build_config,
    check_health,
    create_parser,
    load_unit,
    main,
    validate_args,
)


UNITS_MODULE = "cli_sample_units"


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def units_module(tmp_path, monkeypatch):
    """Importable module holding sample units."""
    source = textwrap.dedent('''
        from service_starter import Unit


        class GoodUnit(Unit):
            async def on_start(self):
                pass


        class BrokenUnit(Unit):
            async def on_start(self):
                raise RuntimeError("cannot bind")


        def build_good():
            return GoodUnit("built")


        def not_a_unit():
            return "nope"


        LIMIT = 42
    ''')
    (tmp_path / f"{UNITS_MODULE}.py").write_text(source)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.delitem(sys.modules, UNITS_MODULE, raising=False)
    yield UNITS_MODULE
    sys.modules.pop(UNITS_MODULE, None)


@pytest.fixture
def restore_logging():
    """Undo setup_logging() side effects."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def base_config():
    return OrchestratorConfig(health_probe_enabled=False)


# ============================================================
# PARSER TESTS
# ============================================================

class TestParser:
    """Tests for argument parsing and validation."""

    def test_units_are_repeatable(self):
        args = create_parser().parse_args(["--unit", "a:A", "-u", "b:B"])

        assert args.units == ["a:A", "b:B"]
        assert validate_args(args) == []

    def test_unit_required(self):
        args = create_parser().parse_args([])

        assert validate_args(args) == ["at least one --unit is required"]

    def test_check_health_needs_no_unit(self):
        args = create_parser().parse_args(["--check-health"])

        assert validate_args(args) == []

    def test_malformed_unit_reference(self):
        args = create_parser().parse_args(["--unit", "module_only"])

        assert "--unit must look like module:attr, got 'module_only'" in validate_args(args)

    def test_port_range(self):
        args = create_parser().parse_args(["--unit", "a:A", "--health-port", "0"])

        assert validate_args(args) == ["--health-port must be between 1 and 65535"]

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--version"])

        assert "1.0.0" in capsys.readouterr().out


class TestBuildConfig:
    """Tests for merging CLI arguments over the base configuration."""

    def test_no_overrides(self, base_config):
        args = create_parser().parse_args(["--unit", "a:A"])

        assert build_config(args, base_config) == base_config

    def test_overrides(self, base_config):
        args = create_parser().parse_args([
            "--unit", "a:A",
            "--name", "billing",
            "--stop-on-error",
            "--keep-running-on-unhandled",
            "--health-host", "0.0.0.0",
            "--health-port", "8099",
            "--log-level", "DEBUG",
            "--log-format", "json",
        ])

        config = build_config(args, base_config)

        assert config.name == "billing"
        assert config.stop_on_error is True
        assert config.stop_on_unhandled_exception is False
        assert config.health_probe_host == "0.0.0.0"
        assert config.health_probe_port == 8099
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_disable_probe(self):
        args = create_parser().parse_args(["--unit", "a:A", "--no-health-probe", "--health-socket", "/tmp/x.sock"])

        config = build_config(args, OrchestratorConfig())

        assert config.health_probe_enabled is False
        assert config.health_probe_socket == "/tmp/x.sock"

    def test_environment_is_the_base(self, monkeypatch):
        monkeypatch.setenv("SERVICE_STARTER_NAME", "from-env")
        args = create_parser().parse_args(["--unit", "a:A"])

        assert build_config(args).name == "from-env"


# ============================================================
# UNIT LOADING TESTS
# ============================================================

class TestLoadUnit:
    """Tests for load_unit()."""

    def test_class_reference(self, units_module):
        unit = load_unit(f"{units_module}:GoodUnit")

        assert isinstance(unit, Unit)
        assert unit.name == "GoodUnit"

    def test_factory_reference(self, units_module):
        assert load_unit(f"{units_module}:build_good").name == "built"

    @pytest.mark.parametrize("attr", ["not_a_unit", "LIMIT", "missing"])
    def test_rejects_non_units(self, units_module, attr):
        with pytest.raises(ConfigurationError):
            load_unit(f"{units_module}:{attr}")

    def test_missing_module(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_unit("no_such_module_here:Unit")

        assert exc_info.value.context["cause_type"] == "ModuleNotFoundError"


# ============================================================
# ENTRY POINT TESTS
# ============================================================

class TestAsyncMain:
    """Tests for async_main()."""

    @pytest.mark.asyncio
    async def test_start_failure_exit_code(self, units_module, base_config):
        args = create_parser().parse_args([
            "--unit", f"{units_module}:GoodUnit",
            "--unit", f"{units_module}:BrokenUnit",
        ])
        factory = OrchestratorFactory()

        code = await async_main(args, base_config, factory)

        assert code == ExitCode.UNIT_ERROR
        assert [u.name for u in factory.instance.units] == ["GoodUnit", "BrokenUnit"]

    @pytest.mark.asyncio
    async def test_one_orchestrator_per_factory(self, units_module, base_config):
        args = create_parser().parse_args(["--unit", f"{units_module}:BrokenUnit"])
        factory = OrchestratorFactory()
        await async_main(args, base_config, factory)

        with pytest.raises(OrchestratorExistsError):
            await async_main(args, base_config, factory)

    @pytest.mark.asyncio
    async def test_check_health(self, orchestrator, make_unit, tmp_path, capsys):
        socket_path = str(tmp_path / "health.sock")
        orchestrator.register(make_unit("a"))
        await orchestrator.start()
        probe = HttpHealthProbe(orchestrator, socket_path=socket_path)
        await probe.start()

        try:
            code = await check_health(OrchestratorConfig(health_probe_socket=socket_path))
        finally:
            await probe.stop()

        assert code == 0
        assert '"healthy": true' in capsys.readouterr().out


class TestMain:
    """Tests for main()."""

    def test_invalid_arguments(self, capsys):
        assert main([]) == 1
        assert "at least one --unit is required" in capsys.readouterr().err

    def test_check_health_unreachable(self, tmp_path, capsys):
        code = main(["--check-health", "--health-socket", str(tmp_path / "none.sock")])

        assert code == 1
        assert "Health probe unreachable" in capsys.readouterr().err

    def test_runs_units(self, units_module, restore_logging):
        code = main(["--unit", f"{units_module}:BrokenUnit", "--no-health-probe"])

        assert code == ExitCode.UNIT_ERROR

    def test_unknown_unit(self, restore_logging):
        assert main(["--unit", "no_such_module_here:Unit", "--no-health-probe"]) == 1


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_json_format(self, restore_logging, capsys):
        logger = setup_logging(level="DEBUG", log_format="json", name="billing")

        logger.info("ready")
        line = capsys.readouterr().out.strip().splitlines()[-1]

        record = json.loads(line)
        assert record["level"] == "INFO"
        assert record["message"] == "ready"
        assert record["orchestrator"] == "billing"
        assert logging.getLogger().level == logging.DEBUG

    def test_json_format_escapes_quotes_and_tracebacks(self, restore_logging, capsys):
        logger = setup_logging(log_format="json", name='say "hi"')

        try:
            {}["missing"]
        except KeyError:
            logger.error('lookup of "missing" failed', exc_info=True)
        logger.info("after")

        lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
        records = [json.loads(line) for line in lines]

        assert len(records) == 2
        assert records[0]["message"] == 'lookup of "missing" failed'
        assert records[0]["orchestrator"] == 'say "hi"'
        assert "Traceback" in records[0]["exception"]
        assert "KeyError" in records[0]["exception"]
        assert "exception" not in records[1]

    def test_text_format(self, restore_logging, capsys):
        setup_logging(level="WARNING", log_format="text")

        logging.getLogger("service_starter.core").warning("slow stop")

        assert "| WARNING  | service_starter.core | - | slow stop" in capsys.readouterr().out
