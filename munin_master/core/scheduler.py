"""
Module de planification pour le maître Munin

Ce module gère :
- Le déclenchement périodique des cycles de mise à jour
- L'exécution des tâches en arrière-plan
- Le démarrage et arrêt du planificateur
"""

import threading
from typing import Callable, Optional

import schedule


class UpdateScheduler:
    """
    Gestionnaire de planification des cycles de mise à jour

    Cette classe utilise le module 'schedule' pour lancer un cycle toutes
    les N minutes (option master.update_interval). Les cycles s'exécutent
    dans le thread du planificateur, donc jamais deux à la fois.
    """

    def __init__(self, config, logger, update_callback: Callable[[], Optional[float]]):
        """
        Initialise le planificateur

        Args:
            config: Instance de MasterConfig
            logger: Instance de MasterLogger
            update_callback: Fonction lançant un cycle de mise à jour
        """
        self.config = config
        self.logger = logger.get_logger()
        self.update_callback = update_callback

        self.is_running = False
        self.scheduler_thread = None
        self.stop_event = threading.Event()

        self.interval = None
        self.next_run = None
        self.last_duration = None
        self.runs = 0
        self.failures = 0

        self._setup_schedule()

    def _setup_schedule(self):
        """Configure la planification basée sur la configuration"""
        self.interval = max(1, self.config.getint('master', 'update_interval', 5))

        schedule.clear()
        schedule.every(self.interval).minutes.do(self._scheduled_update)
        self.logger.info(f"Planification configurée: toutes les {self.interval} minute(s)")

        self._update_next_run()

    def _scheduled_update(self):
        """
        Méthode appelée par le planificateur pour déclencher un cycle

        Une erreur dans un cycle est journalisée et n'interrompt pas la
        planification des cycles suivants.
        """
        self.runs += 1
        try:
            self.last_duration = self.update_callback()
        except Exception:
            self.failures += 1
            self.logger.exception("Erreur lors du cycle de mise à jour planifié")
        finally:
            self._update_next_run()

    def _update_next_run(self):
        jobs = schedule.get_jobs()
        if jobs:
            self.next_run = min(job.next_run for job in jobs)
            self.logger.debug(f"Prochain cycle planifié: {self.next_run}")

    def start(self, run_now: bool = True):
        """
        Démarre le planificateur en arrière-plan

        Args:
            run_now: Lance un premier cycle immédiatement dans le thread du planificateur
        """
        if self.is_running:
            self.logger.warning("Planificateur déjà en cours d'exécution")
            return

        self.is_running = True
        self.stop_event.clear()

        self.scheduler_thread = threading.Thread(
            target=self._scheduler_loop,
            args=(run_now,),
            name="UpdateScheduler",
            daemon=True
        )
        self.scheduler_thread.start()

        self.logger.info(f"Planificateur démarré (intervalle: {self.interval} min)")

    def stop(self):
        """Arrête le planificateur et attend la fin du cycle en cours"""
        if not self.is_running:
            self.logger.warning("Planificateur pas en cours d'exécution")
            return

        self.logger.info("Arrêt du planificateur...")

        self.is_running = False
        self.stop_event.set()

        if self.scheduler_thread and self.scheduler_thread.is_alive():
            self.scheduler_thread.join(timeout=self.config.getint('master', 'timeout', 180))

        self.logger.info("Planificateur arrêté")

    def _scheduler_loop(self, run_now: bool):
        self.logger.debug("Boucle du planificateur démarrée")

        if run_now and not self.stop_event.is_set():
            self._scheduled_update()

        while not self.stop_event.is_set():
            try:
                schedule.run_pending()
            except Exception:
                self.logger.exception("Erreur dans la boucle du planificateur")

            self.stop_event.wait(timeout=1)

        self.logger.debug("Boucle du planificateur terminée")

    def get_status(self) -> dict:
        """
        Retourne le statut actuel du planificateur

        Returns:
            dict: Informations sur l'état du planificateur
        """
        return {
            'is_running': self.is_running,
            'interval_minutes': self.interval,
            'next_run': self.next_run.isoformat() if self.next_run else None,
            'last_duration': round(self.last_duration, 2) if self.last_duration is not None else None,
            'runs': self.runs,
            'failures': self.failures,
        }
