"""
Module de configuration pour le maître Munin

Ce module gère la configuration du maître, incluant :
- Lecture du fichier de configuration INI
- Valeurs par défaut
- Validation des paramètres
- Déclaration des nœuds (hôtes) à interroger
"""

import os
import sys
import configparser
from typing import Dict, Any, List, Optional


# Sections réservées : toute autre section déclare un hôte
RESERVED_SECTIONS = ('master', 'logging')


class MasterConfig:
    """
    Gestionnaire de configuration pour le maître Munin

    Une instance est construite explicitement puis transmise aux
    composants qui en ont besoin (cycle de mise à jour, planificateur,
    logger). Il n'existe aucune instance globale.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialise la configuration du maître

        Args:
            config_file: Chemin vers le fichier de configuration (optionnel)
        """
        self.config = configparser.ConfigParser(default_section='__defaults__', interpolation=None)
        self.config_file = config_file or self._get_default_config_path()

        self._set_defaults()
        self._load_config()

    def _get_default_config_path(self) -> str:
        """
        Détermine le chemin par défaut du fichier de configuration

        La variable d'environnement MUNIN_MASTER_CONFIG est prioritaire.

        Returns:
            str: Chemin vers le fichier de configuration
        """
        env_path = os.environ.get('MUNIN_MASTER_CONFIG')
        if env_path:
            return env_path

        if sys.platform == "win32":
            return os.path.join(
                os.environ.get("PROGRAMDATA", "C:\\ProgramData"),
                "Munin",
                "munin-master.ini"
            )
        return "/etc/munin/munin-master.ini"

    def _set_defaults(self):
        """
        Définit les valeurs de configuration par défaut

        Ces valeurs sont utilisées si aucun fichier de configuration n'est trouvé
        ou si certaines clés sont manquantes.
        """
        self.config.add_section('master')
        self.config.set('master', 'dbdir', '/var/lib/munin')
        self.config.set('master', 'rundir', '/var/run/munin')
        self.config.set('master', 'fork', 'true')
        self.config.set('master', 'max_processes', '16')
        self.config.set('master', 'limit_hosts', '')
        self.config.set('master', 'timeout', '180')
        self.config.set('master', 'update_interval', '5')  # minutes

        self.config.add_section('logging')
        self.config.set('logging', 'log_level', 'INFO')
        self.config.set('logging', 'log_file', '/var/log/munin/munin-update.log')
        self.config.set('logging', 'max_log_size', '10485760')  # 10MB
        self.config.set('logging', 'backup_count', '5')

    def _load_config(self):
        """
        Charge la configuration depuis le fichier

        Si le fichier n'existe pas, utilise les valeurs par défaut.
        En cas d'erreur de lecture, les valeurs par défaut sont conservées.
        """
        try:
            if os.path.exists(self.config_file):
                self.config.read(self.config_file, encoding='utf-8')
                self.load_errors = []
            else:
                self.load_errors = [f"Fichier de configuration non trouvé: {self.config_file}"]
        except configparser.Error as e:
            self.load_errors = [f"Erreur lors du chargement de la configuration: {e}"]

    def get(self, section: str, option: str, fallback: Any = None) -> str:
        """
        Récupère une valeur de configuration

        Args:
            section: Nom de la section
            option: Nom de l'option
            fallback: Valeur par défaut si non trouvée

        Returns:
            str: Valeur de configuration
        """
        return self.config.get(section, option, fallback=fallback)

    def getboolean(self, section: str, option: str, fallback: bool = False) -> bool:
        """Récupère une valeur booléenne de configuration"""
        return self.config.getboolean(section, option, fallback=fallback)

    def getint(self, section: str, option: str, fallback: int = 0) -> int:
        """Récupère une valeur entière de configuration"""
        return self.config.getint(section, option, fallback=fallback)

    def set(self, section: str, option: str, value: Any):
        """
        Définit une valeur de configuration

        Args:
            section: Nom de la section
            option: Nom de l'option
            value: Nouvelle valeur
        """
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, str(value))

    def save(self):
        """
        Sauvegarde la configuration dans le fichier

        Crée les dossiers parents si nécessaire.
        """
        config_dir = os.path.dirname(self.config_file)
        if config_dir and not os.path.exists(config_dir):
            os.makedirs(config_dir, exist_ok=True)

        with open(self.config_file, 'w', encoding='utf-8') as f:
            self.config.write(f)

    def get_update_config(self) -> Dict[str, Any]:
        """
        Récupère la configuration d'un cycle de mise à jour

        Returns:
            dict: dbdir, rundir, fork, max_processes, limit_hosts, timeout
        """
        return {
            'dbdir': self.get('master', 'dbdir'),
            'rundir': self.get('master', 'rundir'),
            'fork': self.getboolean('master', 'fork', True),
            'max_processes': self.getint('master', 'max_processes', 16),
            'limit_hosts': self.get_limit_hosts(),
            'timeout': self.getint('master', 'timeout', 180),
        }

    def get_limit_hosts(self) -> List[str]:
        """
        Retourne la liste blanche d'hôtes (vide = tous les hôtes)

        La valeur est une liste séparée par des virgules ou des espaces.
        """
        raw = self.get('master', 'limit_hosts', '') or ''
        return [name for name in raw.replace(',', ' ').split() if name]

    def set_limit_hosts(self, host_names: List[str]):
        """Remplace la liste blanche d'hôtes (utilisé par l'option --host)"""
        self.set('master', 'limit_hosts', ','.join(host_names))

    def get_logging_config(self) -> Dict[str, Any]:
        """
        Récupère la configuration du logging

        Returns:
            dict: Configuration logging
        """
        return {
            'log_level': self.get('logging', 'log_level', 'INFO'),
            'log_file': self.get('logging', 'log_file'),
            'max_log_size': self.getint('logging', 'max_log_size', 10485760),
            'backup_count': self.getint('logging', 'backup_count', 5),
        }

    def get_host_sections(self) -> Dict[str, Dict[str, str]]:
        """
        Retourne les sections déclarant des hôtes, dans l'ordre du fichier

        Returns:
            dict: Nom de section -> options de la section
        """
        return {
            section: dict(self.config.items(section))
            for section in self.config.sections()
            if section not in RESERVED_SECTIONS
        }

    def validate(self) -> List[str]:
        """
        Valide la configuration courante

        Returns:
            list: Liste des erreurs trouvées (vide si la configuration est valide)
        """
        errors = []

        for option in ('dbdir', 'rundir'):
            if not self.get('master', option):
                errors.append(f"Option master.{option} manquante")

        try:
            if self.getint('master', 'max_processes') < 1:
                errors.append("max_processes doit être supérieur ou égal à 1")
        except ValueError:
            errors.append("max_processes doit être un entier")

        try:
            if self.getint('master', 'update_interval') < 1:
                errors.append("update_interval doit être supérieur ou égal à 1 minute")
        except ValueError:
            errors.append("update_interval doit être un entier")

        try:
            self.getboolean('master', 'fork')
        except ValueError:
            errors.append("fork doit être un booléen (yes/no, true/false)")

        log_level = (self.get('logging', 'log_level') or '').upper()
        if log_level not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            errors.append("Niveau de log invalide")

        for section, options in self.get_host_sections().items():
            port = options.get('port', '4949')
            if not port.isdigit() or not (1 <= int(port) <= 65535):
                errors.append(f"Port invalide pour l'hôte [{section}]: {port}")

        return errors


def create_default_config(config_path: str) -> MasterConfig:
    """
    Crée un fichier de configuration par défaut avec un hôte d'exemple

    Args:
        config_path: Chemin où créer le fichier de configuration

    Returns:
        MasterConfig: Instance de configuration créée
    """
    config = MasterConfig(config_path)
    if not config.get_host_sections():
        config.set('localhost', 'address', '127.0.0.1')
        config.set('localhost', 'port', '4949')
        config.set('localhost', 'update', 'yes')
    config.save()
    return config
