"""
Worker de mise à jour d'un hôte

Interroge le nœud Munin d'un hôte et retourne la configuration de
chacun de ses services.
"""

import logging
from typing import Dict, Any, Optional

from .base import BaseWorker
from .node import NodeClient, parse_config_lines


class UpdateWorker(BaseWorker):
    """
    Collecte la configuration des services d'un hôte

    L'instance ne contient que des données simples (descripteur d'hôte,
    délai, logger nommé) afin de pouvoir être transmise à un processus fils.
    """

    def __init__(self, host: Dict[str, Any], timeout: float = 180,
                 logger: Optional[logging.Logger] = None):
        """
        Args:
            host: Descripteur d'hôte issu du GroupRepository
            timeout: Délai réseau en secondes
            logger: Logger à utiliser
        """
        super().__init__(host['host_name'], logger)
        self.host = host
        self.timeout = timeout

    def do_work(self) -> Dict[str, Dict[str, Any]]:
        service_configs = {}

        with NodeClient(self.host['address'], self.host['port'],
                        timeout=self.timeout, node_name=self.worker_id) as client:
            services = client.list_services()
            self.logger.debug(f"{self.worker_id}: {len(services)} service(s) publié(s)")

            for service in services:
                service_configs[service] = parse_config_lines(client.fetch_config(service))

        self.logger.info(f"Configuration collectée pour {self.worker_id} ({len(service_configs)} service(s))")
        return service_configs
