"""
Client du protocole texte des nœuds Munin

Seules les commandes nécessaires à la collecte des configurations sont
implémentées :
- list [nom]      : liste des services, sur une ligne
- config service  : lignes « attribut valeur » terminées par « . »
- quit            : fin de session
"""

import socket
from typing import Dict, Any, Iterable, List, Optional

from ..core.datafile import new_service_config, add_attribute


class NodeError(Exception):
    """Réponse inattendue ou connexion interrompue avec un nœud"""


def parse_config_lines(lines: Iterable[str]) -> Dict[str, Any]:
    """
    Convertit la réponse d'une commande config en configuration de service

    Args:
        lines: Lignes « attribut valeur », commentaires (#) permis

    Returns:
        dict: Configuration du service (global + data_source)
    """
    service_config = new_service_config()

    for line in lines:
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        key, _, value = line.partition(' ')
        add_attribute(service_config, key.split('.'), value.strip())

    return service_config


class NodeClient:
    """
    Session TCP avec un nœud Munin

    S'utilise comme gestionnaire de contexte :

        with NodeClient('127.0.0.1', 4949) as client:
            services = client.list_services()
    """

    def __init__(self, address: str, port: int = 4949, timeout: float = 180,
                 node_name: Optional[str] = None):
        """
        Args:
            address: Adresse du nœud
            port: Port TCP du nœud
            timeout: Délai maximal par opération réseau (secondes)
            node_name: Nom d'hôte à passer à la commande list
        """
        self.address = address
        self.port = port
        self.timeout = timeout
        self.node_name = node_name
        self.banner = None
        self._socket = None
        self._reader = None

    def connect(self):
        """
        Ouvre la connexion et lit la bannière du nœud

        Raises:
            NodeError: Si le nœud ne présente pas de bannière
            OSError: En cas d'erreur réseau
        """
        self._socket = socket.create_connection((self.address, self.port), timeout=self.timeout)
        self._reader = self._socket.makefile('r', encoding='utf-8', errors='replace', newline='\n')

        try:
            banner = self._readline()
            if not banner.startswith('#'):
                raise NodeError(f"Bannière inattendue de {self.address}:{self.port}: {banner!r}")
        except (NodeError, OSError):
            self.close()
            raise
        self.banner = banner

    def close(self):
        """Termine la session (quit) et ferme la connexion"""
        if self._socket is None:
            return

        try:
            self._send('quit')
        except OSError:
            pass
        finally:
            self._reader.close()
            self._socket.close()
            self._reader = None
            self._socket = None

    def list_services(self) -> List[str]:
        """
        Retourne la liste des services publiés par le nœud

        Returns:
            list: Noms de services
        """
        command = f"list {self.node_name}" if self.node_name else 'list'
        self._send(command)
        return self._readline().split()

    def fetch_config(self, service: str) -> List[str]:
        """
        Récupère les lignes de configuration d'un service

        Args:
            service: Nom du service

        Returns:
            list: Lignes de la réponse, sans la ligne terminale « . »
        """
        self._send(f"config {service}")

        lines = []
        while True:
            line = self._readline()
            if line == '.':
                return lines
            lines.append(line)

    def _send(self, command: str):
        if self._socket is None:
            raise NodeError("Session non ouverte")
        self._socket.sendall(f"{command}\n".encode('utf-8'))

    def _readline(self) -> str:
        line = self._reader.readline()
        if not line:
            raise NodeError(f"Connexion fermée par {self.address}:{self.port}")
        return line.rstrip('\r\n')

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False
