"""
Module de logging pour le maître Munin

Ce module fournit un système de logging centralisé avec :
- Rotation automatique des logs
- Différents niveaux de log
- Formatage cohérent
- Sortie console
"""

import os
import sys
import logging
import logging.handlers


LOGGER_NAME = 'MuninMaster'


class MasterLogger:
    """
    Gestionnaire de logging pour le maître Munin

    Cette classe configure le logger nommé partagé par l'ensemble des
    composants, avec rotation automatique et formatage approprié.
    """

    def __init__(self, config=None, console: bool = True):
        """
        Initialise le système de logging

        Args:
            config: Instance de MasterConfig pour récupérer les paramètres de log
            console: Ajoute un handler sur la sortie standard
        """
        self.config = config
        self.console = console
        self.logger = logging.getLogger(LOGGER_NAME)

        # Éviter la duplication si déjà configuré
        if not self.logger.handlers:
            self._setup_logging()

    def _setup_logging(self):
        """
        Configure le système de logging avec les handlers appropriés

        Configure :
        - Le niveau de log basé sur la configuration
        - La rotation des fichiers de log
        - La sortie console
        """
        if self.config:
            logging_config = self.config.get_logging_config()
            log_level_str = logging_config['log_level']
            log_file = logging_config['log_file']
            max_size = logging_config['max_log_size']
            backup_count = logging_config['backup_count']
        else:
            log_level_str = 'INFO'
            log_file = None
            max_size = 10485760  # 10MB
            backup_count = 5

        log_level = getattr(logging, log_level_str.upper(), logging.INFO)
        self.logger.setLevel(log_level)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - [%(process)d] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if log_file:
            try:
                log_dir = os.path.dirname(log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=log_file,
                    maxBytes=max_size,
                    backupCount=backup_count,
                    encoding='utf-8'
                )
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

            except OSError as e:
                sys.stderr.write(f"Erreur lors de la configuration du logging fichier: {e}\n")

        if self.console or not self.logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(log_level)
            console_handler.setFormatter(logging.Formatter(fmt='%(levelname)s - %(message)s'))
            self.logger.addHandler(console_handler)

        self.logger.debug("Système de logging initialisé")
        if self.config:
            self.logger.debug(f"Niveau de log: {log_level_str}")
            self.logger.debug(f"Fichier de log: {log_file}")

    def get_logger(self) -> logging.Logger:
        """
        Retourne l'instance du logger

        Returns:
            logging.Logger: Instance du logger configuré
        """
        return self.logger

    def debug(self, message: str):
        """Log un message de niveau DEBUG"""
        self.logger.debug(message)

    def log_config_info(self, config):
        """
        Log les informations de configuration du cycle

        Args:
            config: Instance de MasterConfig
        """
        self.debug("=== Configuration du maître ===")
        for key, value in config.get_update_config().items():
            self.debug(f"Master.{key}: {value}")
        self.debug(f"Hôtes déclarés: {len(config.get_host_sections())}")
        self.debug("=== Fin configuration ===")

