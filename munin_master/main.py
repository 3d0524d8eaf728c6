"""
Point d'entrée principal du maître Munin

Ce module orchestre les composants du maître et peut être exécuté
de différentes manières :
- Cycle de mise à jour unique (usage cron, mode par défaut)
- Mode service avec planification périodique des cycles
- Affichage du datafile persisté
"""

import sys
import signal
import argparse
import threading

from munin_master.core.config import MasterConfig, create_default_config
from munin_master.core.datafile import ConfigStore
from munin_master.core.errors import MasterError
from munin_master.core.logger import MasterLogger
from munin_master.core.scheduler import UpdateScheduler
from munin_master.core.update import Update


class MuninMaster:
    """
    Maître Munin principal

    Cette classe assemble configuration, logging, cycle de mise à jour et
    planificateur, et gère les différents modes de fonctionnement.
    """

    def __init__(self, config: MasterConfig):
        """
        Initialise le maître

        Args:
            config: Configuration déjà chargée (et éventuellement surchargée par la CLI)
        """
        self.config = config

        self.logger = MasterLogger(self.config)
        self.app_logger = self.logger.get_logger()
        for message in getattr(self.config, 'load_errors', []):
            self.app_logger.warning(message)
        self.logger.log_config_info(self.config)

        self.scheduler = None
        self.running = False
        self.shutdown_event = threading.Event()

    def run_update(self) -> float:
        """
        Exécute un cycle de mise à jour complet

        Returns:
            float: Durée du cycle en secondes
        """
        update = Update(self.config, self.logger)
        update_time = update.run()

        status = update.get_status()
        self.app_logger.info(f"{len(status['hosts_updated'])}/{status['workers']} hôte(s) mis à jour")
        if status['failed_workers']:
            self.app_logger.warning(f"Hôtes en échec: {', '.join(status['failed_workers'])}")

        return update_time

    def run_service_mode(self):
        """
        Lance le maître en mode service

        Un cycle est lancé immédiatement puis toutes les N minutes,
        jusqu'à réception de SIGTERM ou SIGINT.
        """
        self.app_logger.info("Démarrage du maître Munin en mode service")

        try:
            self._setup_signal_handlers()

            self.scheduler = UpdateScheduler(self.config, self.logger, self.run_update)
            self.scheduler.start()
            self.running = True

            while self.running and not self.shutdown_event.is_set():
                self.shutdown_event.wait(timeout=1.0)

        except KeyboardInterrupt:
            self.app_logger.info("Interruption clavier détectée")
        finally:
            self.shutdown()

    def _setup_signal_handlers(self):
        """Configure les gestionnaires de signaux pour l'arrêt propre"""
        def signal_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            self.app_logger.info(f"Signal {signal_name} reçu - Arrêt en cours...")
            self.running = False
            self.shutdown_event.set()

        if hasattr(signal, 'SIGTERM'):
            signal.signal(signal.SIGTERM, signal_handler)

        if hasattr(signal, 'SIGINT'):
            signal.signal(signal.SIGINT, signal_handler)

    def shutdown(self):
        """Arrête proprement le planificateur"""
        self.running = False
        self.shutdown_event.set()

        if self.scheduler:
            self.scheduler.stop()
            self.scheduler = None

        self.app_logger.info("Maître Munin arrêté")

    def dump(self, out=None):
        """
        Affiche le contenu du datafile persisté, hôte par hôte

        Args:
            out: Flux de sortie (sys.stdout par défaut)
        """
        out = out or sys.stdout
        update_config = self.config.get_update_config()
        store = ConfigStore(update_config['dbdir'], update_config['rundir'], self.app_logger)

        service_configs = store.read()
        if not service_configs:
            out.write("Datafile vide ou absent\n")
            return

        for host in sorted(service_configs):
            out.write(f"{host}\n")
            for service in sorted(service_configs[host]):
                config = service_configs[host][service]
                out.write(f"  {service}: {len(config['global'])} attribut(s) global(aux), "
                          f"{len(config['data_source'])} source(s) de données\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Maître Munin - Collecte et persistance de la configuration des nœuds'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Chemin vers le fichier de configuration'
    )

    parser.add_argument(
        '--mode', '-m',
        choices=['update', 'service', 'dump'],
        default='update',
        help='Mode de fonctionnement du maître'
    )

    parser.add_argument(
        '--host',
        action='append',
        default=[],
        metavar='NOM',
        help='Limite la mise à jour à cet hôte (option répétable)'
    )

    fork_group = parser.add_mutually_exclusive_group()
    fork_group.add_argument(
        '--fork',
        dest='fork',
        action='store_const',
        const=True,
        default=None,
        help='Exécute les workers dans des processus parallèles'
    )
    fork_group.add_argument(
        '--no-fork',
        dest='fork',
        action='store_const',
        const=False,
        help='Exécute les workers un par un dans le processus courant'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Active les messages de niveau DEBUG'
    )

    parser.add_argument(
        '--create-config',
        action='store_true',
        help='Crée un fichier de configuration par défaut'
    )

    parser.add_argument(
        '--validate-config',
        action='store_true',
        help='Valide la configuration actuelle'
    )

    return parser


def main(argv=None) -> int:
    """
    Point d'entrée principal avec gestion des arguments de ligne de commande

    Returns:
        int: Code de sortie
    """
    args = build_parser().parse_args(argv)

    if args.create_config:
        if not args.config:
            print("❌ --create-config nécessite --config")
            return 1
        try:
            create_default_config(args.config)
        except OSError as e:
            print(f"❌ Erreur création configuration: {e}")
            return 1
        print(f"✅ Configuration par défaut créée: {args.config}")
        return 0

    config = MasterConfig(args.config)

    if args.validate_config:
        errors = config.validate()
        for error in errors:
            print(f"Erreur de configuration: {error}")
        print("✅ Configuration valide" if not errors else "❌ Configuration invalide")
        return 0 if not errors else 1

    # Surcharges de la ligne de commande
    if args.host:
        config.set_limit_hosts(args.host)
    if args.fork is not None:
        config.set('master', 'fork', 'true' if args.fork else 'false')
    if args.debug:
        config.set('logging', 'log_level', 'DEBUG')

    master = MuninMaster(config)

    try:
        if args.mode == 'update':
            master.run_update()
        elif args.mode == 'service':
            master.run_service_mode()
        elif args.mode == 'dump':
            master.dump()
        return 0

    except MasterError as e:
        master.app_logger.error(f"Erreur fatale: {e}")
        return 1
    except KeyboardInterrupt:
        master.app_logger.info("Arrêt demandé par l'utilisateur")
        return 130


if __name__ == '__main__':
    sys.exit(main())
