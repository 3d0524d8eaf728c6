"""
Cycle de mise à jour du maître Munin

Un cycle contacte les nœuds Munin, rassemble la configuration de leurs
services, la compare à la configuration précédemment enregistrée et
persiste le résultat.

Déroulement d'un cycle :
1. Création du répertoire d'exécution si nécessaire
2. Acquisition du verrou munin-update.lock
3. Sélection des hôtes et création des workers
4. Exécution des workers et agrégation des résultats
5. Lecture de l'ancien datafile
6. Comparaison ancienne / nouvelle configuration
7. Écriture atomique du nouveau datafile
8. Écriture des statistiques de durée (munin-update.stats)
9. Libération du verrou
"""

import os
import time
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .datafile import ConfigStore, check_host_configs
from .dispatcher import ResultAggregator, create_dispatcher
from .errors import RunDirError
from .group_repository import GroupRepository
from .lock import RunLock
from ..workers.update_worker import UpdateWorker


RUN_LOCK_NAME = 'munin-update.lock'
STATS_FILE_NAME = 'munin-update.stats'


def select_hosts(hosts: Iterable[Dict[str, Any]], limit_hosts: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
    """
    Filtre les hôtes à mettre à jour

    Applique d'abord la liste blanche (si elle n'est pas vide), puis ne
    garde que les hôtes marqués pour la mise à jour. L'ordre d'origine est
    conservé.

    Args:
        hosts: Descripteurs d'hôtes dans l'ordre d'énumération
        limit_hosts: Noms d'hôtes autorisés (vide ou None = tous)

    Returns:
        list: Hôtes retenus
    """
    hosts = list(hosts)

    allowed = set(limit_hosts or [])
    if allowed:
        hosts = [host for host in hosts if host['host_name'] in allowed]

    return [host for host in hosts if host['update']]


class ServiceConfigAggregator(ResultAggregator):
    """
    Agrège les résultats des workers dans le processus parent

    Seul écrivain de l'ensemble service_configs et de la cible des
    statistiques pendant un cycle.
    """

    def __init__(self, stats, logger: Optional[logging.Logger] = None):
        """
        Args:
            stats: Fichier ouvert en écriture recevant les lignes UD
            logger: Logger à utiliser
        """
        self.stats = stats
        self.logger = logger or logging.getLogger('MuninMaster')
        self.service_configs = {}
        self.failed_workers = []

    def record(self, worker_id: str, time_used: float, service_configs: Optional[Dict[str, Any]]):
        if worker_id in self.service_configs or worker_id in self.failed_workers:
            raise ValueError(f"Résultat déjà enregistré pour le worker {worker_id}")

        self.stats.write(f"UD|{worker_id}|{time_used:.2f}\n")

        if service_configs is None:
            self.failed_workers.append(worker_id)
            self.logger.warning(f"Aucune configuration reçue de {worker_id}")
            return

        try:
            check_host_configs(worker_id, service_configs)
        except ValueError as e:
            self.failed_workers.append(worker_id)
            self.logger.warning(f"Configuration de {worker_id} ignorée: {e}")
            return

        self.service_configs[worker_id] = service_configs


class Update:
    """
    Orchestrateur d'un cycle de mise à jour

    La configuration est transmise explicitement au constructeur. Deux
    cycles ne s'exécutent jamais en même temps sur une même installation :
    run() est sérialisé par le verrou munin-update.lock.
    """

    def __init__(self, config, logger, group_repository: Optional[GroupRepository] = None,
                 worker_factory: Optional[Callable] = None, dispatcher=None):
        """
        Initialise le cycle de mise à jour

        Args:
            config: Instance de MasterConfig
            logger: Instance de MasterLogger
            group_repository: Dépôt d'hôtes (construit depuis la configuration par défaut)
            worker_factory: Fabrique hôte -> worker (UpdateWorker par défaut)
            dispatcher: Stratégie de répartition (choisie selon l'option fork par défaut)
        """
        self.config = config
        self.logger = logger.get_logger()

        update_config = config.get_update_config()
        self.dbdir = update_config['dbdir']
        self.rundir = update_config['rundir']
        self.limit_hosts = update_config['limit_hosts']
        self.timeout = update_config['timeout']

        self.group_repository = group_repository or GroupRepository(config, self.logger)
        self.worker_factory = worker_factory or self._create_update_worker
        self.dispatcher = dispatcher or create_dispatcher(
            update_config['fork'], update_config['max_processes'], self.logger
        )
        self.store = ConfigStore(self.dbdir, self.rundir, self.logger)

        self.lock_file = os.path.join(self.rundir, RUN_LOCK_NAME)
        self.stats_file = os.path.join(self.dbdir, STATS_FILE_NAME)

        # État du dernier cycle
        self.workers = []
        self.service_configs = {}
        self.old_service_configs = {}
        self.failed_workers = []

    def run(self) -> float:
        """
        Exécute un cycle complet de mise à jour

        Returns:
            float: Durée du cycle en secondes

        Raises:
            MasterError: En cas d'erreur fatale (répertoire, verrou, datafile)
        """
        self._create_rundir_if_missing()

        with RunLock(self.lock_file, self.logger):
            self.logger.info("Démarrage de munin-update")
            start_time = time.time()

            stats, stats_tmp = self._open_stats()
            completed = False
            try:
                aggregator = ServiceConfigAggregator(stats, self.logger)

                self.workers = self._create_workers()
                self.dispatcher.dispatch(self.workers, aggregator)
                self.service_configs = aggregator.service_configs
                self.failed_workers = aggregator.failed_workers

                self.old_service_configs = self.store.read()
                self._compare_and_act_on_config_changes()
                self.store.write(self.service_configs)

                update_time = time.time() - start_time
                stats.write(f"UT|{update_time:.2f}\n")
                completed = True
            finally:
                stats.close()
                if not completed:
                    self._discard_stats(stats_tmp)

            self._replace_stats(stats_tmp)
            self.logger.info(f"Munin-update terminé ({update_time:.2f} sec)")

        return update_time

    def _create_rundir_if_missing(self):
        if os.path.isdir(self.rundir):
            return

        try:
            os.makedirs(self.rundir, mode=0o700, exist_ok=True)
        except OSError as e:
            raise RunDirError(f"Impossible de créer le répertoire d'exécution {self.rundir}: {e}") from e

    def _open_stats(self):
        """
        Ouvre le fichier temporaire des statistiques

        Returns:
            tuple: (fichier ouvert, chemin temporaire ou None si repli sur os.devnull)
        """
        stats_tmp = self.stats_file + '.tmp'
        try:
            return open(stats_tmp, 'w', encoding='utf-8'), stats_tmp
        except OSError as e:
            self.logger.warning(f"Impossible d'ouvrir {self.stats_file}: {e}")
            return open(os.devnull, 'w', encoding='utf-8'), None

    def _replace_stats(self, stats_tmp: Optional[str]):
        if stats_tmp is None:
            return

        try:
            os.replace(stats_tmp, self.stats_file)
        except OSError as e:
            self.logger.warning(f"Impossible de remplacer {self.stats_file}: {e}")

    def _discard_stats(self, stats_tmp: Optional[str]):
        if stats_tmp is None:
            return

        try:
            os.unlink(stats_tmp)
        except OSError as e:
            self.logger.warning(f"Impossible de supprimer {stats_tmp}: {e}")

    def _create_workers(self) -> List:
        for group, host_names in self.group_repository.get_groups().items():
            self.logger.debug(f"Groupe {group}: {', '.join(host_names)}")

        hosts = select_hosts(self.group_repository.get_all_hosts(), self.limit_hosts)
        self.logger.debug(f"{len(hosts)} hôte(s) à mettre à jour")
        return [self.worker_factory(host) for host in hosts]

    def _create_update_worker(self, host: Dict[str, Any]) -> UpdateWorker:
        return UpdateWorker(host, timeout=self.timeout, logger=self.logger)

    def _compare_and_act_on_config_changes(self):
        """
        Point d'extension : comparaison ancienne / nouvelle configuration

        Aucune action n'est déclenchée ; seules les différences d'hôtes
        sont journalisées.
        """
        old_hosts = set(self.old_service_configs)
        new_hosts = set(self.service_configs)

        for host in sorted(new_hosts - old_hosts):
            self.logger.debug(f"Nouvel hôte dans la configuration: {host}")
        for host in sorted(old_hosts - new_hosts):
            self.logger.debug(f"Hôte absent de la nouvelle configuration: {host}")

    def get_status(self) -> Dict[str, Any]:
        """
        Retourne un résumé du dernier cycle

        Returns:
            dict: Nombre de workers, hôtes collectés et échecs
        """
        return {
            'workers': len(self.workers),
            'hosts_updated': sorted(self.service_configs),
            'failed_workers': list(self.failed_workers),
            'datafile': self.store.path,
            'stats_file': self.stats_file,
        }
