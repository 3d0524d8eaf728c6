"""
Package des workers de mise à jour

Ce package contient :
- Le worker de base (classe abstraite)
- Le client du protocole des nœuds Munin
- Le worker de mise à jour d'un hôte
"""
