# src/crawler/services/domain_data_service.py
import asyncio
import logging
import socket
import ssl
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import aiohttp
import dns.exception
import dns.resolver

from crawler.services.http_request_service import HttpRequestService
from crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

CERT_DATE_FORMAT = "%b %d %H:%M:%S %Y %Z"
LLMS_TXT_TIMEOUT = 3
SSL_CONNECT_TIMEOUT = 10


def _cert_name(cert: Dict[str, Any], field: str) -> Optional[str]:
    for rdn in cert.get(field, ()):
        for key, value in rdn:
            if key == "commonName":
                return value
    return None


def _cert_date(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.strptime(raw, CERT_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class DomainDataService:
    """
    DNS, TLS and llms.txt probes for the host of an analyzed page.

    The resolver and socket APIs block, so each lookup runs in a worker thread.
    Every probe degrades to None / [] on failure; nothing here raises.
    """

    def __init__(self, http: HttpRequestService, timeout: float = 5):
        self._http = http
        self.timeout = timeout
        self._resolver: Optional[dns.resolver.Resolver] = None

    # =========================================================================
    #  DNS
    # =========================================================================
    def _resolve(self, name: str, rdtype: str):
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
        return self._resolver.resolve(name, rdtype, lifetime=self.timeout)

    def _txt_records(self, name: str) -> List[str]:
        try:
            answers = self._resolve(name, "TXT")
        except dns.exception.DNSException as e:
            logger.debug("TXT lookup failed for %s: %s", name, e)
            return []
        return ["".join(part.decode("utf-8", errors="replace") for part in answer.strings) for answer in answers]

    def lookup_ip(self, host: str) -> Optional[str]:
        try:
            return socket.gethostbyname(host)
        except OSError as e:
            logger.debug("Could not resolve %s: %s", host, e)
            return None

    def lookup_dns_servers(self, host: str) -> List[str]:
        try:
            answers = self._resolve(host, "NS")
        except dns.exception.DNSException as e:
            logger.debug("NS lookup failed for %s: %s", host, e)
            return []
        return [str(answer.target).rstrip(".") for answer in answers]

    def lookup_dmarc(self, host: str) -> Optional[str]:
        for record in self._txt_records(f"_dmarc.{host}"):
            if "v=dmarc1" in record.lower():
                return record
        return None

    def lookup_spf(self, host: str) -> Optional[str]:
        for record in self._txt_records(host):
            if "v=spf1" in record.lower():
                return record
        return None

    def lookup_reverse_dns(self, ip: Optional[str]) -> Optional[str]:
        if not ip:
            return None
        try:
            hostname = socket.gethostbyaddr(ip)[0]
        except OSError as e:
            logger.debug("Reverse lookup failed for %s: %s", ip, e)
            return None
        return hostname if hostname and hostname != ip else None

    # =========================================================================
    #  TLS
    # =========================================================================
    def fetch_ssl_certificate(self, host: str, port: int = 443) -> Optional[Dict[str, Any]]:
        """
        Connects with certificate verification on.

        Returns the validity window and common names, a record with
        `valid: False` when verification fails, or None when no TLS handshake
        could be made at all.
        """
        context = ssl.create_default_context()
        try:
            with socket.create_connection((host, port), timeout=min(self.timeout, SSL_CONNECT_TIMEOUT)) as sock:
                with context.wrap_socket(sock, server_hostname=host) as ssock:
                    cert = ssock.getpeercert() or {}
        except ssl.SSLCertVerificationError as e:
            logger.debug("Certificate verification failed for %s: %s", host, e)
            return {"valid": False, "valid_from": None, "valid_to": None, "issuer_cn": None, "subject_cn": None}
        except (ssl.SSLError, OSError) as e:
            logger.debug("TLS handshake failed for %s: %s", host, e)
            return None

        valid_from = _cert_date(cert.get("notBefore"))
        valid_to = _cert_date(cert.get("notAfter"))
        now = datetime.now(timezone.utc)
        valid = bool(valid_from and valid_to and valid_from <= now <= valid_to)

        return {
            "valid": valid,
            "valid_from": valid_from.isoformat() if valid_from else None,
            "valid_to": valid_to.isoformat() if valid_to else None,
            "issuer_cn": _cert_name(cert, "issuer"),
            "subject_cn": _cert_name(cert, "subject"),
        }

    # =========================================================================
    #  llms.txt
    # =========================================================================
    async def find_llms_txt(self, base_url: str) -> Optional[str]:
        """HEAD first; servers that reject HEAD get a GET. Returns the URL when it answers 200."""
        url = f"{base_url}/llms.txt"
        probe = await self._http.head(url, timeout=LLMS_TXT_TIMEOUT)
        status = probe.status if probe is not None else None
        if probe is None:
            response = await self._http.get(url, timeout=LLMS_TXT_TIMEOUT)
            status = response.status if response is not None else None
        return url if status == 200 else None

    # =========================================================================
    #  ENTRY POINT
    # =========================================================================
    async def _in_thread(self, default: Any, func: Callable[..., Any], *args: Any,
                         timeout: Optional[float] = None) -> Any:
        """Runs a blocking lookup in a worker thread, giving up with `default` once the timeout passes."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout or self.timeout)
        except asyncio.TimeoutError:
            logger.debug("%s timed out for %s", getattr(func, "__name__", "lookup"), args)
            return default

    async def collect(self, url: str) -> Dict[str, Any]:
        host = UrlUtils.get_host(url)
        base_url = UrlUtils.get_base_url(url)
        facts: Dict[str, Any] = {
            "server_ip": None,
            "dns_servers": [],
            "dmarc_record": None,
            "spf_record": None,
            "ssl_certificate": None,
            "reverse_dns": None,
            "llms_txt_url": None,
        }
        if not host or not base_url:
            return facts

        is_https = UrlUtils.get_scheme(url) == "https"

        async def _no_certificate():
            return None

        try:
            server_ip, dns_servers, dmarc, spf, certificate, llms_txt = await asyncio.gather(
                self._in_thread(None, self.lookup_ip, host),
                self._in_thread([], self.lookup_dns_servers, host),
                self._in_thread(None, self.lookup_dmarc, host),
                self._in_thread(None, self.lookup_spf, host),
                # Connect and handshake are each bounded by the socket timeout.
                self._in_thread(None, self.fetch_ssl_certificate, host, timeout=2 * self.timeout)
                if is_https else _no_certificate(),
                self.find_llms_txt(base_url),
            )
        except (OSError, aiohttp.ClientError, asyncio.TimeoutError, dns.exception.DNSException) as e:
            logger.warning("Domain data probes failed for %s: %s", host, e)
            return facts

        facts.update({
            "server_ip": server_ip,
            "dns_servers": dns_servers,
            "dmarc_record": dmarc,
            "spf_record": spf,
            "ssl_certificate": certificate,
            "llms_txt_url": llms_txt,
        })
        facts["reverse_dns"] = await self._in_thread(None, self.lookup_reverse_dns, server_ip)
        return facts
