# tests/conftest.py
"""
Fixtures partagées pour les tests du maître Munin.

Chaque test reçoit une installation isolée (dbdir, rundir, fichier de
configuration) sous tmp_path. Le logging fichier est désactivé.
"""

import pytest

from munin_master.core.config import MasterConfig
from munin_master.core.logger import MasterLogger


def write_config(path, master=None, hosts=None):
    """
    Écrit un fichier de configuration INI

    Args:
        path: Chemin du fichier à écrire
        master: Options de la section [master]
        hosts: Nom de section -> options de l'hôte
    """
    lines = ["[master]"]
    for key, value in (master or {}).items():
        lines.append(f"{key} = {value}")
    lines += ["", "[logging]", "log_file =", "log_level = DEBUG", ""]
    for section, options in (hosts or {}).items():
        lines.append(f"[{section}]")
        for key, value in options.items():
            lines.append(f"{key} = {value}")
        lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


@pytest.fixture
def installation(tmp_path):
    """Répertoires dbdir et rundir d'une installation de test"""
    dbdir = tmp_path / "db"
    dbdir.mkdir()
    return {"dbdir": dbdir, "rundir": tmp_path / "run", "root": tmp_path}


@pytest.fixture
def make_config(installation):
    """
    Fabrique de MasterConfig pointant sur l'installation de test

    Usage : make_config(hosts={...}, fork="false", limit_hosts="a")
    """
    def _make(hosts=None, **master):
        options = {
            "dbdir": installation["dbdir"],
            "rundir": installation["rundir"],
            "fork": "false",
            "max_processes": "4",
        }
        options.update(master)
        path = write_config(installation["root"] / "munin-master.ini", options, hosts)
        return MasterConfig(str(path))

    return _make


@pytest.fixture
def master_logger(make_config):
    return MasterLogger(make_config(), console=False)
