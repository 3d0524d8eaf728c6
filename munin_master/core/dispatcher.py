"""
Répartition des workers de mise à jour

Deux stratégies interchangeables exécutent une liste de workers et
transmettent chaque résultat à un agrégateur unique :
- SequentialDispatcher : un worker après l'autre, dans le processus courant
- ParallelDispatcher : chaque worker dans un processus isolé

Dans les deux cas l'agrégateur n'est appelé que dans le processus parent,
exactement une fois par worker. Un worker ne modifie jamais lui-même
l'état agrégé.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any, Dict, Iterable, Optional, Tuple


WorkerResult = Tuple[str, float, Optional[Dict[str, Any]]]


class ResultAggregator(ABC):
    """Interface de réception des résultats de workers"""

    @abstractmethod
    def record(self, worker_id: str, time_used: float, service_configs: Optional[Dict[str, Any]]):
        """
        Enregistre le résultat d'un worker

        Args:
            worker_id: Identité du worker (nom d'hôte)
            time_used: Durée d'exécution en secondes
            service_configs: Configurations collectées, ou None en cas d'échec
        """
        pass


def execute_worker(worker) -> WorkerResult:
    """
    Exécute un worker et retourne son message de résultat

    Fonction de module pour pouvoir être envoyée à un processus fils.
    """
    return worker.run()


class BaseDispatcher(ABC):
    """Classe de base des stratégies de répartition"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('MuninMaster')

    @abstractmethod
    def dispatch(self, workers: Iterable, aggregator: ResultAggregator):
        """
        Exécute tous les workers et transmet chaque résultat à l'agrégateur

        Args:
            workers: Workers à exécuter, dans l'ordre de soumission
            aggregator: Destinataire unique des résultats
        """
        pass


class SequentialDispatcher(BaseDispatcher):
    """Exécute les workers un par un, dans l'ordre de soumission"""

    def dispatch(self, workers: Iterable, aggregator: ResultAggregator):
        for worker in workers:
            worker_id, time_used, service_configs = execute_worker(worker)
            aggregator.record(worker_id, time_used, service_configs)


class ParallelDispatcher(BaseDispatcher):
    """
    Exécute chaque worker dans un processus isolé

    Les résultats reviennent au parent sous forme d'un message unique
    (identité, durée, configurations). L'ordre de fin des workers n'est
    pas garanti ; l'agrégation ne dépend pas de l'ordre car chaque worker
    possède une clé distincte.
    """

    def __init__(self, max_processes: int = 16, logger: Optional[logging.Logger] = None):
        super().__init__(logger)
        self.max_processes = max(1, max_processes)

    def dispatch(self, workers: Iterable, aggregator: ResultAggregator):
        workers = list(workers)
        if not workers:
            return

        max_workers = min(self.max_processes, len(workers))
        self.logger.debug(f"Démarrage de {len(workers)} worker(s) sur {max_workers} processus")

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(execute_worker, worker): worker for worker in workers}

            for future in as_completed(futures):
                worker = futures[future]
                try:
                    worker_id, time_used, service_configs = future.result()
                except Exception as e:
                    # Processus mort ou résultat non transmissible
                    self.logger.error(f"Le processus du worker {worker.worker_id} a échoué: {e}")
                    worker_id, time_used, service_configs = worker.worker_id, 0.0, None

                aggregator.record(worker_id, time_used, service_configs)


def create_dispatcher(fork: bool, max_processes: int = 16,
                      logger: Optional[logging.Logger] = None) -> BaseDispatcher:
    """
    Choisit la stratégie de répartition selon la configuration

    Args:
        fork: True pour la répartition parallèle par processus
        max_processes: Nombre maximal de processus simultanés
        logger: Logger à utiliser

    Returns:
        BaseDispatcher: Stratégie de répartition
    """
    if fork:
        return ParallelDispatcher(max_processes, logger)
    return SequentialDispatcher(logger)
