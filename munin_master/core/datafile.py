"""
Stockage de la configuration des services (fichier datafile)

Le fichier contient une ligne par attribut feuille, sous la forme :

    <hôte>:<service>.<chemin> <valeur>

Un chemin de deux segments (``ds.attr``) désigne un attribut de source de
données ; toute autre profondeur désigne un attribut global du service.
Les chemins globaux sont réécrits en entier (segments joints par ``.``),
l'encodage est donc symétrique du décodage. Un chemin global de
exactement deux segments ne peut pas faire l'aller-retour : il est relu
comme une source de données.

Le format ne peut pas porter :
- un nom d'hôte vide, contenant ``:`` ou un blanc ;
- un nom de service, de source de données ou un segment de chemin vide,
  contenant ``.`` ou un blanc (par exemple le service ``ip_10.0.0.1``) ;
- une valeur contenant un saut de ligne (``\\n`` ou ``\\r``).

check_host_configs() refuse ces configurations ; le cycle de mise à jour
traite alors l'hôte comme un échec plutôt que d'écrire un fichier corrompu.

L'écriture passe par un fichier temporaire renommé atomiquement, sous le
verrou munin-datafile.lock.
"""

import os
import logging
import tempfile
from typing import Dict, Any, Iterable, List, Optional

from .errors import ConfigStoreError, LockError
from .lock import RunLock


DATAFILE_NAME = 'datafile'
DATAFILE_LOCK_NAME = 'munin-datafile.lock'


def new_service_config() -> Dict[str, Any]:
    """
    Crée une configuration de service vide

    Returns:
        dict: {'global': [(chemin, valeur), ...], 'data_source': {ds: {attr: valeur}}}
    """
    return {'global': [], 'data_source': {}}


def add_attribute(service_config: Dict[str, Any], path: List[str], value: str):
    """
    Range un attribut dans une configuration de service selon la profondeur du chemin

    Args:
        service_config: Configuration du service à compléter
        path: Segments du chemin de l'attribut (sans le nom du service)
        value: Valeur de l'attribut
    """
    if len(path) == 2:
        data_source, attribute = path
        service_config['data_source'].setdefault(data_source, {})[attribute] = value
    else:
        service_config['global'].append((list(path), value))


def encode_service_configs(service_configs: Dict[str, Dict[str, Any]]) -> List[str]:
    """
    Encode un ensemble de configurations en lignes du fichier datafile

    Hôtes, services, sources de données et attributs sont triés ; les
    attributs globaux gardent leur ordre d'apparition. Deux appels sur le
    même ensemble produisent donc exactement les mêmes lignes.

    Args:
        service_configs: hôte -> service -> configuration du service

    Returns:
        list: Lignes terminées par un saut de ligne

    Raises:
        ValueError: Si un nom ou une valeur ne peut pas être représenté
    """
    lines = []

    for host in sorted(service_configs):
        services = service_configs[host] or {}
        check_host_configs(host, services)
        for service in sorted(services):
            config = services[service]

            for path, value in config.get('global', []):
                key = '.'.join([service] + list(path))
                lines.append(_format_line(host, key, value))

            data_sources = config.get('data_source', {})
            for data_source in sorted(data_sources):
                for attribute in sorted(data_sources[data_source]):
                    key = f"{service}.{data_source}.{attribute}"
                    lines.append(_format_line(host, key, data_sources[data_source][attribute]))

    return lines


def _format_line(host: str, key: str, value: Any) -> str:
    return f"{host}:{key} {value}\n"


def _check_name(name: Any, forbidden: str, what: str, where: str):
    name = str(name)
    if not name or any(c in forbidden or c.isspace() for c in name):
        raise ValueError(f"{what} non représentable dans le datafile ({where}): {name!r}")


def check_host_configs(host: str, services: Dict[str, Dict[str, Any]]):
    """
    Vérifie que la configuration d'un hôte peut être écrite dans le datafile

    Args:
        host: Nom de l'hôte
        services: service -> configuration du service

    Raises:
        ValueError: Au premier nom ou valeur non représentable
    """
    _check_name(host, ':', "Nom d'hôte", host)

    for service, config in (services or {}).items():
        _check_name(service, '.', "Nom de service", host)
        where = f"{host}:{service}"

        for path, value in config.get('global', []):
            for segment in path:
                _check_name(segment, '.', "Segment de chemin", where)
            _check_value(value, f"{where}.{'.'.join(str(s) for s in path)}")

        for data_source, attributes in config.get('data_source', {}).items():
            _check_name(data_source, '.', "Source de données", where)
            for attribute, value in attributes.items():
                _check_name(attribute, '.', "Attribut", f"{where}.{data_source}")
                _check_value(value, f"{where}.{data_source}.{attribute}")


def _check_value(value: Any, where: str):
    value = str(value)
    if '\n' in value or '\r' in value:
        raise ValueError(f"Valeur multi-ligne refusée pour {where}")


def decode_lines(lines: Iterable[str], logger: Optional[logging.Logger] = None) -> Dict[str, Dict[str, Any]]:
    """
    Décode des lignes du fichier datafile

    Args:
        lines: Lignes brutes (avec ou sans saut de ligne)
        logger: Logger pour signaler les lignes mal formées

    Returns:
        dict: hôte -> service -> configuration du service
    """
    logger = logger or logging.getLogger('MuninMaster')
    service_configs = {}

    for line_number, line in enumerate(lines, start=1):
        line = line.rstrip('\r\n')
        if not line:
            continue

        host, sep, rest = line.partition(':')
        key, space, value = rest.partition(' ')
        if not sep or not space or not host or not key:
            logger.warning(f"Ligne {line_number} du datafile ignorée (mal formée): {line!r}")
            continue

        service, *path = key.split('.')

        host_config = service_configs.setdefault(host, {})
        service_config = host_config.setdefault(service, new_service_config())
        add_attribute(service_config, path, value)

    return service_configs


class ConfigStore:
    """
    Lecture et écriture atomique du fichier datafile

    La lecture ne prend aucun verrou : le renommage atomique garantit
    qu'un lecteur voit toujours un fichier complet. L'écriture est
    protégée par un verrou dédié, distinct du verrou de cycle.
    """

    def __init__(self, dbdir: str, rundir: str, logger: Optional[logging.Logger] = None):
        """
        Args:
            dbdir: Répertoire de données contenant le datafile
            rundir: Répertoire d'exécution contenant le verrou du datafile
            logger: Logger à utiliser
        """
        self.logger = logger or logging.getLogger('MuninMaster')
        self.path = os.path.join(dbdir, DATAFILE_NAME)
        self.lock_path = os.path.join(rundir, DATAFILE_LOCK_NAME)

    def read(self) -> Dict[str, Dict[str, Any]]:
        """
        Lit la configuration persistée

        Returns:
            dict: Ensemble de configurations, vide si le fichier n'existe pas

        Raises:
            ConfigStoreError: Si le fichier existe mais ne peut pas être lu
        """
        if not os.path.exists(self.path):
            self.logger.debug(f"Aucun datafile existant: {self.path}")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as dump:
                service_configs = decode_lines(dump, self.logger)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigStoreError(f"Impossible de lire '{self.path}': {e}") from e

        self.logger.debug(f"Datafile lu: {len(service_configs)} hôte(s)")
        return service_configs

    def write(self, service_configs: Dict[str, Dict[str, Any]]):
        """
        Remplace atomiquement le datafile par l'ensemble donné

        Args:
            service_configs: Ensemble de configurations à persister

        Raises:
            ConfigStoreError: En cas d'échec d'écriture, de fermeture ou de renommage
        """
        lines = encode_service_configs(service_configs)

        try:
            with RunLock(self.lock_path, self.logger):
                self._write_atomic(lines)
        except LockError as e:
            raise ConfigStoreError(f"Verrou du datafile indisponible: {e}") from e

        self.logger.debug(f"Datafile écrit: {len(lines)} ligne(s)")

    def _write_atomic(self, lines: List[str]):
        directory = os.path.dirname(self.path) or '.'

        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=DATAFILE_NAME + '.', suffix='.tmp')
        except OSError as e:
            raise ConfigStoreError(f"Impossible de créer un fichier temporaire dans '{directory}': {e}") from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as dump:
                dump.writelines(lines)
                dump.flush()
                os.fsync(dump.fileno())
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise ConfigStoreError(f"Impossible d'écrire '{self.path}': {e}") from e
