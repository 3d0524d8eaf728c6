"""
Dépôt des groupes et des hôtes déclarés dans la configuration

Chaque section non réservée du fichier de configuration déclare un hôte :

    [example.com;web01.example.com]     groupe explicite
    [db01.example.com]                  groupe déduit du domaine

Options reconnues : address, port, update.
"""

import logging
from typing import Dict, Any, List, Optional


DEFAULT_NODE_PORT = 4949


def default_group(host_name: str) -> str:
    """
    Déduit le groupe d'un hôte à partir de son nom

    Le groupe est le domaine du nom d'hôte, ou le nom lui-même s'il
    ne contient aucun point.
    """
    _, dot, domain = host_name.partition('.')
    return domain if dot and domain else host_name


class GroupRepository:
    """
    Énumère les hôtes connus et leurs groupes

    L'ordre d'énumération est celui des sections du fichier de configuration.
    """

    def __init__(self, config, logger: Optional[logging.Logger] = None):
        """
        Args:
            config: Instance de MasterConfig
            logger: Logger à utiliser
        """
        self.config = config
        self.logger = logger or logging.getLogger('MuninMaster')
        self.hosts = self._load_hosts()

    def _load_hosts(self) -> List[Dict[str, Any]]:
        hosts = []
        seen = set()

        for section, options in self.config.get_host_sections().items():
            group, sep, host_name = section.partition(';')
            if not sep:
                host_name, group = section, default_group(section)

            host_name = host_name.strip()
            if not host_name:
                self.logger.warning(f"Section d'hôte ignorée (nom vide): [{section}]")
                continue

            if host_name in seen:
                self.logger.warning(f"Hôte déclaré plusieurs fois, seule la première déclaration est gardée: {host_name}")
                continue
            seen.add(host_name)

            try:
                port = int(options.get('port', DEFAULT_NODE_PORT))
            except ValueError:
                self.logger.warning(f"Port invalide pour {host_name}, hôte ignoré: {options.get('port')}")
                continue

            try:
                update = self.config.getboolean(section, 'update', True)
            except ValueError:
                self.logger.warning(f"Option update invalide pour {host_name}, mise à jour désactivée")
                update = False

            hosts.append({
                'host_name': host_name,
                'group': group.strip(),
                'address': options.get('address', host_name),
                'port': port,
                'update': update,
            })

        return hosts

    def get_all_hosts(self) -> List[Dict[str, Any]]:
        """
        Retourne tous les hôtes connus

        Returns:
            list: Descripteurs d'hôtes (host_name, group, address, port, update)
        """
        return list(self.hosts)

    def get_groups(self) -> Dict[str, List[str]]:
        """
        Retourne les groupes et les noms de leurs hôtes

        Returns:
            dict: Nom de groupe -> noms d'hôtes
        """
        groups = {}
        for host in self.hosts:
            groups.setdefault(host['group'], []).append(host['host_name'])
        return groups
