"""
Module Core - Composants principaux du maître Munin

Ce module contient les fonctionnalités de base du maître :
- Configuration et logging
- Verrous et stockage du datafile
- Répartition des workers
- Cycle de mise à jour et planification
"""
