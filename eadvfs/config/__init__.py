# Configuration package initialisation
