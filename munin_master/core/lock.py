"""
Verrous consultatifs nommés pour le maître Munin

Deux verrous indépendants sont utilisés :
- munin-update.lock : sérialise les cycles de mise à jour complets
- munin-datafile.lock : sérialise les écrivains du fichier datafile

Les verrous sont bloquants et exclusifs. Ils s'utilisent avec un bloc
``with`` afin d'être relâchés sur tous les chemins de sortie.
"""

import os
import errno
import logging
from typing import Optional

from .errors import LockError


def _lock_msvcrt(handle):
    # LK_LOCK abandonne après 10 tentatives d'une seconde : on recommence
    import msvcrt
    while True:
        try:
            msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
            return
        except OSError as e:
            if e.errno != errno.EDEADLOCK:
                raise


class RunLock:
    """
    Verrou exclusif bloquant basé sur un fichier

    Utilise fcntl.flock sous Unix et msvcrt.locking sous Windows.
    """

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        """
        Args:
            path: Chemin du fichier de verrou
            logger: Logger optionnel pour tracer l'acquisition
        """
        self.path = path
        self.logger = logger or logging.getLogger('MuninMaster')
        self._handle = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def acquire(self):
        """
        Acquiert le verrou, en bloquant jusqu'à ce qu'il soit libre

        Raises:
            LockError: Si le fichier de verrou ne peut pas être ouvert ou verrouillé
        """
        if self._handle is not None:
            raise LockError(f"Verrou déjà détenu: {self.path}")

        try:
            handle = open(self.path, 'a+', encoding='utf-8')
        except OSError as e:
            raise LockError(f"Impossible d'ouvrir le verrou {self.path}: {e}") from e

        try:
            handle.seek(0)
            if os.name == 'nt':
                _lock_msvcrt(handle)
            else:
                import fcntl
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            handle.close()
            raise LockError(f"Impossible d'acquérir le verrou {self.path}: {e}") from e

        # PID du détenteur, utile pour le diagnostic
        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()

        self._handle = handle
        self.logger.debug(f"Verrou acquis: {self.path}")

    def release(self):
        """Relâche le verrou s'il est détenu"""
        handle, self._handle = self._handle, None
        if handle is None:
            return

        try:
            if os.name == 'nt':
                import msvcrt
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                import fcntl
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

        self.logger.debug(f"Verrou relâché: {self.path}")

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.release()
        return False
