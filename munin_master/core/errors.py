"""
Exceptions du maître Munin

Les erreurs définies ici sont fatales pour un cycle de mise à jour :
elles remontent jusqu'à l'appelant et interrompent le cycle sans
laisser d'état partiellement écrit sur le disque.
"""


class MasterError(Exception):
    """Classe de base de toutes les erreurs fatales du maître"""


class RunDirError(MasterError):
    """Le répertoire d'exécution n'a pas pu être créé"""


class LockError(MasterError):
    """Un verrou nommé n'a pas pu être acquis"""


class ConfigStoreError(MasterError):
    """
    Erreur d'entrée/sortie sur le fichier de configuration persisté

    Levée pour tout échec d'ouverture, d'écriture, de fermeture ou de
    renommage du fichier datafile.
    """
