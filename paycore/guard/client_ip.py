"""
Résolution de l'adresse IP cliente.

Les en-têtes de proxy (CF-Connecting-IP, X-Forwarded-For) ne sont lus que si
TRUST_PROXY est activé; sinon seule l'adresse de la connexion directe compte.
"""
import ipaddress
from typing import Mapping, Optional

UNSPECIFIED_IP = "0.0.0.0"


def _parse_ip(value: Optional[str]):
    try:
        return ipaddress.ip_address((value or "").strip())
    except ValueError:
        return None


def _is_public(ip) -> bool:
    return not (ip.is_private or ip.is_reserved or ip.is_loopback or ip.is_link_local or ip.is_multicast)


def resolve_client_ip(peer: Optional[str], headers: Mapping[str, str], trust_proxy: bool = False) -> str:
    """
    Retourne une IP valide (chaîne) pour la requête.
    - trust_proxy: CF-Connecting-IP puis le premier élément de X-Forwarded-For
    - une IP de proxy privée/réservée est ignorée au profit de l'adresse directe
    - toute valeur non parsable devient 0.0.0.0
    """
    if trust_proxy:
        candidate = headers.get("cf-connecting-ip") or ""
        if not candidate:
            forwarded = headers.get("x-forwarded-for") or ""
            candidate = forwarded.split(",")[0]
        ip = _parse_ip(candidate)
        if ip is not None and _is_public(ip):
            return str(ip)

    ip = _parse_ip(peer)
    return str(ip) if ip is not None else UNSPECIFIED_IP
