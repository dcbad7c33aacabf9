# src/auditor/services/render_service.py
import asyncio
import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from auditor.model import CheckResult, Importance

logger = logging.getLogger(__name__)

LCP_THRESHOLD_MS = 2500
CLS_THRESHOLD = 0.1
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

# Lighthouse audit id -> metric key
LIGHTHOUSE_METRICS = {
    "first-contentful-paint": "fcp",
    "largest-contentful-paint": "lcp",
    "max-potential-fid": "fid",
    "cumulative-layout-shift": "cls",
    "server-response-time": "ttfb",
    "speed-index": "speedIndex",
    "interactive": "interactive",
}

RENDER_RESULT_CATEGORIES = {
    "core_web_vitals": "performance",
    "javascript_rendering": "seo",
    "advanced_technology_detection": "technology",
}


class RenderServiceError(RuntimeError):
    """A render container failed, timed out or printed unparsable output."""


def _extract_json(output: str) -> Dict[str, Any]:
    match = _JSON_OBJECT.search(output)
    try:
        data = json.loads(match.group(0) if match else output)
    except ValueError as e:
        raise RenderServiceError(f"Unparsable render output: {e}") from e
    if not isinstance(data, dict):
        raise RenderServiceError("Render output is not a JSON object")
    return data


class RenderService:
    """
    Headless-browser analyses run through the containers of a docker-compose
    project: Lighthouse for Core Web Vitals, Chromium for rendering and
    screenshots, Wappalyzer for technology detection.
    """

    def __init__(self, compose_file: Path, timeout: int = 60):
        self.compose_file = Path(compose_file)
        self.timeout = timeout

    # =========================================================================
    #  PROCESS HANDLING
    # =========================================================================
    async def is_available(self) -> bool:
        if shutil.which("docker") is None:
            return False
        try:
            process = await asyncio.create_subprocess_exec(
                "docker", "--version",
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            return await asyncio.wait_for(process.wait(), timeout=10) == 0
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("Docker availability check failed: %s", e)
            return False

    async def _run(self, service: str, *args: str) -> str:
        command = ["docker-compose", "-f", str(self.compose_file), "run", "--rm", service, *args]
        logger.debug("Running render container: %s", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RenderServiceError(f"Could not start {service}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise RenderServiceError(f"{service} timed out after {self.timeout} seconds") from e

        if process.returncode != 0:
            raise RenderServiceError(
                f"{service} failed with exit code {process.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout.decode("utf-8", errors="replace")

    # =========================================================================
    #  OPERATIONS
    # =========================================================================
    async def core_web_vitals(self, url: str, device: str = "desktop") -> Dict[str, Any]:
        data = _extract_json(await self._run("lighthouse", url, device))
        audits = data.get("audits") or {}
        categories = data.get("categories") or {}
        return {
            "url": data.get("requestedUrl"),
            "final_url": data.get("finalUrl"),
            "score": (categories.get("performance") or {}).get("score"),
            "metrics": {
                key: (audits.get(audit_id) or {}).get("numericValue")
                for audit_id, key in LIGHTHOUSE_METRICS.items()
            },
        }

    async def rendered_dom(self, url: str) -> Dict[str, Any]:
        return _extract_json(await self._run("chromium", "/app/render.js", url))

    async def screenshot(self, url: str, viewport: str = "desktop") -> Dict[str, Any]:
        return _extract_json(await self._run("chromium", "/app/screenshot.js", url, viewport))

    async def technologies(self, url: str) -> Dict[str, Any]:
        return _extract_json(await self._run("wappalyzer", url))

    # =========================================================================
    #  RESULTS
    # =========================================================================
    async def analyze(self, url: str) -> Dict[str, CheckResult]:
        """
        Runs the three rendering analyses and converts them into check results.
        A failing analysis is left out of the report.
        """
        results: Dict[str, CheckResult] = {}

        for name, builder in (
                ("core_web_vitals", self._core_web_vitals_result),
                ("javascript_rendering", self._javascript_rendering_result),
                ("advanced_technology_detection", self._technology_result),
        ):
            try:
                result = await builder(url)
            except RenderServiceError as e:
                logger.warning("Render analysis '%s' skipped for %s: %s", name, url, e)
                continue
            if result is not None:
                results[name] = result
        return results

    async def _core_web_vitals_result(self, url: str) -> Optional[CheckResult]:
        vitals = await self.core_web_vitals(url)
        metrics = vitals["metrics"]
        lcp, cls = metrics.get("lcp"), metrics.get("cls")
        if lcp is None or cls is None:
            logger.warning("Lighthouse reported no LCP/CLS for %s", url)
            return None

        errors: Dict[str, str] = {}
        if lcp >= LCP_THRESHOLD_MS:
            errors["lcp_slow"] = f"LCP > 2.5s: {round(lcp / 1000, 2)}s"
        if cls >= CLS_THRESHOLD:
            errors["cls_high"] = f"CLS > 0.1: {cls}"

        score = vitals.get("score")
        return CheckResult.evaluate(Importance.HIGH, {
            "lcp": lcp,
            "fid": metrics.get("fid"),
            "cls": cls,
            "ttfb": metrics.get("ttfb"),
            "performance_score": round(score * 100, 2) if score is not None else None,
        }, errors)

    async def _javascript_rendering_result(self, url: str) -> Optional[CheckResult]:
        rendered = await self.rendered_dom(url)
        seo = rendered.get("seo") or {}
        page_info = rendered.get("pageInfo") or {}
        title_rendered = bool(seo.get("titleRendered"))
        h1_rendered = bool(seo.get("h1Rendered"))

        errors: Dict[str, str] = {}
        if not title_rendered:
            errors["title_not_rendered"] = "Page title not rendered by JavaScript"
        if not h1_rendered:
            errors["h1_not_rendered"] = "H1 not rendered by JavaScript"

        return CheckResult.evaluate(Importance.HIGH, {
            "framework": page_info.get("framework", "Unknown"),
            "has_hydration": bool(page_info.get("hasHydration", False)),
            "title_rendered": title_rendered,
            "h1_rendered": h1_rendered,
            "render_time_ms": rendered.get("renderTime"),
            "console_errors": len((rendered.get("console") or {}).get("errors") or []),
        }, errors)

    async def _technology_result(self, url: str) -> Optional[CheckResult]:
        detected = await self.technologies(url)
        technologies: Dict[str, List[str]] = {}
        for category, items in (detected.get("technologies") or {}).items():
            items = items if isinstance(items, list) else []
            technologies[category] = [
                (item.get("name") if isinstance(item, dict) else None) or "Unknown" for item in items
            ]
        return CheckResult.evaluate(Importance.LOW, {
            "technologies": technologies,
            "total_detected": sum(len(names) for names in technologies.values()),
        }, {})
