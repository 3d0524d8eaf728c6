"""
Workers de test sans réseau

Définis dans un module importable pour pouvoir être envoyés aux
processus fils du ParallelDispatcher.
"""

import os
import time

from munin_master.workers.base import BaseWorker


def sample_service_configs(host_name):
    """Configuration déterministe dépendant du nom d'hôte"""
    return {
        "load": {
            "global": [(["graph_title"], f"Load average on {host_name}")],
            "data_source": {"load": {"label": "load", "warning": "10"}},
        },
        "cpu": {
            "global": [(["graph_vlabel"], "%"), (["graph_args"], "--base 1000")],
            "data_source": {
                "user": {"label": "user", "type": "DERIVE"},
                "system": {"label": "system", "type": "DERIVE"},
            },
        },
    }


class FakeWorker(BaseWorker):
    """Retourne une configuration fixe, ou échoue si fail=True"""

    def __init__(self, host_name, fail=False, delay=0.0):
        super().__init__(host_name)
        self.fail = fail
        self.delay = delay

    def do_work(self):
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise ConnectionRefusedError(f"{self.worker_id} injoignable")
        return sample_service_configs(self.worker_id)


class CrashingWorker(BaseWorker):
    """Termine brutalement le processus qui l'exécute"""

    def do_work(self):
        os._exit(3)


class GarbledWorker(BaseWorker):
    """Retourne une valeur contenant un retour chariot isolé"""

    def do_work(self):
        return {"load": {"global": [(["graph_info"], "weird\rvalue")], "data_source": {}}}


class DottedServiceWorker(BaseWorker):
    """Retourne un service au nom pointé (plugin joker ip_<adresse>)"""

    def do_work(self):
        return {"ip_10.0.0.1": {"global": [(["graph_title"], "IP")],
                                "data_source": {"in": {"label": "received"}}}}


def fake_worker_factory(host):
    """
    Fabrique hôte -> worker de test selon l'adresse de l'hôte :
    'down' échoue, 'garbled' et 'dotted' renvoient une configuration
    non représentable, toute autre adresse réussit.
    """
    if host["address"] == "garbled":
        return GarbledWorker(host["host_name"])
    if host["address"] == "dotted":
        return DottedServiceWorker(host["host_name"])
    return FakeWorker(host["host_name"], fail=host["address"] == "down")
