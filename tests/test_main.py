# tests/test_main.py
"""
Tests du point d'entrée en ligne de commande.
"""

import io
import logging
import socket

from munin_master import main as cli
from munin_master.core.config import MasterConfig
from munin_master.core.datafile import ConfigStore


def test_parser_defaults():
    args = cli.build_parser().parse_args([])
    assert args.mode == "update"
    assert args.fork is None
    assert args.host == []


def test_parser_host_and_fork_flags():
    args = cli.build_parser().parse_args(["--host", "a", "--host", "b", "--no-fork", "-m", "dump"])
    assert args.host == ["a", "b"]
    assert args.fork is False
    assert args.mode == "dump"


def test_create_config_requires_path():
    assert cli.main(["--create-config"]) == 1


def test_create_config_writes_file(tmp_path):
    path = tmp_path / "munin-master.ini"
    assert cli.main(["--create-config", "-c", str(path)]) == 0
    assert "localhost" in MasterConfig(str(path)).get_host_sections()


def test_validate_config(make_config):
    good = make_config()
    assert cli.main(["--validate-config", "-c", good.config_file]) == 0

    bad = make_config(max_processes="0")
    assert cli.main(["--validate-config", "-c", bad.config_file]) == 1


def test_update_mode_without_hosts_writes_empty_datafile(make_config, installation):
    config = make_config()

    assert cli.main(["-c", config.config_file, "--no-fork", "--host", "nobody"]) == 0

    assert (installation["dbdir"] / "datafile").read_text(encoding="utf-8") == ""
    assert (installation["dbdir"] / "munin-update.stats").exists()


def test_update_mode_returns_1_on_fatal_error(make_config, installation):
    blocker = installation["root"] / "blocker"
    blocker.write_text("x", encoding="utf-8")
    config = make_config(rundir=blocker / "run")

    assert cli.main(["-c", config.config_file]) == 1


def test_dump_prints_persisted_configuration(make_config, installation):
    installation["rundir"].mkdir()
    ConfigStore(str(installation["dbdir"]), str(installation["rundir"])).write({
        "web01": {"load": {"global": [(["graph_title"], "Load")], "data_source": {"load": {"label": "load"}}}},
    })
    master = cli.MuninMaster(make_config())
    out = io.StringIO()

    master.dump(out)

    assert out.getvalue().splitlines() == [
        "web01",
        "  load: 1 attribut(s) global(aux), 1 source(s) de données",
    ]


def test_dump_on_missing_datafile(make_config):
    out = io.StringIO()
    cli.MuninMaster(make_config()).dump(out)
    assert out.getvalue() == "Datafile vide ou absent\n"


def test_run_update_logs_groups_and_cycle_summary(make_config, installation, caplog):
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        free_port = s.getsockname()[1]
    config = make_config(hosts={"example;gone": {"address": "127.0.0.1", "port": str(free_port)}},
                         timeout="2")

    with caplog.at_level(logging.DEBUG, logger="MuninMaster"):
        cli.MuninMaster(config).run_update()

    assert "Groupe example: gone" in caplog.text
    assert "0/1 hôte(s) mis à jour" in caplog.text
    assert "Hôtes en échec: gone" in caplog.text
