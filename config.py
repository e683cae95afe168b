"""
Configuration du scanner NFT
"""

import os
import json
import logging
from typing import Dict, Any

logger = logging.getLogger("config")

DEFAULT_CONFIG_FILE = "config.json"

# Configuration par défaut
DEFAULT_CONFIG = {
    # RPC
    "RPC_HTTP_ENDPOINT": "https://api.mainnet-beta.solana.com",
    "COMMITMENT": "confirmed",

    # Output
    "OUTPUT_FORMAT": "json",
    "OUTPUT_FILE": "",

    # Logging
    "LOG_LEVEL": "INFO",

    # Progress notifications
    "ENABLE_TELEGRAM": False,
    "TELEGRAM_BOT_TOKEN": "",
    "TELEGRAM_CHAT_ID": "",
}


def load_config(config_file: str = DEFAULT_CONFIG_FILE) -> Dict[str, Any]:
    """
    Charge la configuration depuis le fichier config.json
    Si le fichier n'existe pas, crée un fichier avec la configuration par défaut

    Args:
        config_file: Chemin du fichier de configuration

    Returns:
        Dictionnaire de configuration
    """
    if os.environ.get("USE_ENV_CONFIG", "").lower() == "true":
        logger.info("Chargement de la configuration depuis les variables d'environnement")
        config = load_config_from_env()
    else:
        if not os.path.exists(config_file):
            with open(config_file, "w") as f:
                json.dump(DEFAULT_CONFIG, f, indent=2)
            logger.info(f"Fichier de configuration créé: {config_file}")
            return dict(DEFAULT_CONFIG)

        try:
            with open(config_file, "r") as f:
                config = json.load(f)
            logger.info(f"Configuration chargée depuis: {config_file}")
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Erreur lors du chargement de la configuration: {e}")
            logger.info("Utilisation de la configuration par défaut")
            return dict(DEFAULT_CONFIG)

    # Fusion avec les clés manquantes
    for key, value in DEFAULT_CONFIG.items():
        if key not in config:
            config[key] = value

    return config


# Valeurs acceptées pour les clés à choix fermé
ALLOWED_VALUES = {
    "COMMITMENT": ("processed", "confirmed", "finalized"),
    "OUTPUT_FORMAT": ("json", "csv"),
    "LOG_LEVEL": ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
}


def _parse_env_value(key: str, raw: str) -> Any:
    """
    Convertit une variable d'environnement selon le type de sa valeur par défaut
    et vérifie les clés à choix fermé
    """
    default_value = DEFAULT_CONFIG[key]
    if isinstance(default_value, bool):
        return raw.strip().lower() in ("true", "1", "yes")

    value = raw.strip()
    if key == "LOG_LEVEL":
        value = value.upper()
    elif key in ALLOWED_VALUES:
        value = value.lower()

    if key in ALLOWED_VALUES and value not in ALLOWED_VALUES[key]:
        raise ValueError(f"{value!r} n'est pas dans {ALLOWED_VALUES[key]}")
    return value


def load_config_from_env() -> Dict[str, Any]:
    """
    Charge la configuration depuis les variables d'environnement
    Une valeur invalide est ignorée au profit de la valeur par défaut

    Returns:
        Dictionnaire de configuration
    """
    config = dict(DEFAULT_CONFIG)

    for key in DEFAULT_CONFIG:
        raw = os.environ.get(key)
        if raw is None:
            continue
        try:
            config[key] = _parse_env_value(key, raw)
        except ValueError as parse_err:
            logger.warning(f"Variable d'env {key} ignorée: {parse_err}")

    return config


def apply_overrides(config: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
    """
    Retourne une copie de la configuration avec les options de la ligne de commande
    Les options absentes (None) ne remplacent rien
    """
    merged = dict(config)
    for key, value in overrides.items():
        if key not in DEFAULT_CONFIG:
            raise KeyError(f"clé de configuration inconnue: {key}")
        if value is not None:
            merged[key] = value
    return merged


def save_config(config: Dict[str, Any], config_file: str = DEFAULT_CONFIG_FILE) -> bool:
    """
    Sauvegarde dans config.json les clés connues de la configuration

    Args:
        config: Dictionnaire de configuration
        config_file: Chemin du fichier de configuration

    Returns:
        True si la sauvegarde a réussi, False sinon
    """
    known = {key: config.get(key, default) for key, default in DEFAULT_CONFIG.items()}
    try:
        with open(config_file, "w") as f:
            json.dump(known, f, indent=2)
        logger.info(f"Configuration sauvegardée dans: {config_file}")
        return True
    except OSError as e:
        logger.error(f"Erreur lors de la sauvegarde de la configuration: {e}")
        return False
