"""
Classe de base pour tous les workers de mise à jour

Un worker collecte la configuration des services d'un seul hôte. Son
exécution est chronométrée et ses échecs sont absorbés : ils sont
signalés par un résultat sans configuration, jamais par une exception.
"""

import time
import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Tuple


class BaseWorker(ABC):
    """
    Classe de base abstraite pour tous les workers

    Les sous-classes implémentent do_work() ; run() fournit le
    chronométrage et la gestion d'erreur communs.
    """

    def __init__(self, worker_id: str, logger: Optional[logging.Logger] = None):
        """
        Initialise le worker de base

        Args:
            worker_id: Identité du worker (nom de l'hôte)
            logger: Logger à utiliser
        """
        self.worker_id = worker_id
        self.logger = logger or logging.getLogger('MuninMaster')

    @abstractmethod
    def do_work(self) -> Dict[str, Dict[str, Any]]:
        """
        Méthode principale de collecte - doit être implémentée par chaque worker

        Returns:
            dict: Nom de service -> configuration du service
        """
        pass

    def run(self) -> Tuple[str, float, Optional[Dict[str, Dict[str, Any]]]]:
        """
        Exécute le worker

        Returns:
            tuple: (identité, durée en secondes, configurations ou None en cas d'échec)
        """
        start_time = time.time()
        self.logger.debug(f"Début du worker {self.worker_id}")

        try:
            service_configs = self.do_work()
        except Exception as e:
            self.logger.warning(f"Échec de la collecte pour {self.worker_id}: {e}")
            service_configs = None

        time_used = time.time() - start_time
        self.logger.debug(f"Worker {self.worker_id} terminé en {time_used:.2f}s")

        return self.worker_id, time_used, service_configs

    def __repr__(self):
        return f"{self.__class__.__name__}({self.worker_id!r})"
