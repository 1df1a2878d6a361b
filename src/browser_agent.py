"""
Browser Agent - Playwright page steered by a local LLM via Ollama
Implements the PageActionProvider contract (goto, observe, act, extract)
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Type, Union

import ollama
from playwright.sync_api import Browser, BrowserContext, Error as PlaywrightError, Page, sync_playwright
from pydantic import ValidationError

from page_actions import (
    ActionCandidate,
    ActionError,
    ExtractionError,
    NavigationError,
    PageActionProvider,
    SchemaT,
)

logger = logging.getLogger(__name__)

INDEX_ATTRIBUTE = "data-career-scout-idx"
INTERACTIVE_SELECTOR = "a, button, [role='button'], [role='link'], [role='menuitem'], [role='tab']"

# Tags every interactive element with a stable index so observe() results can be clicked later.
_SNAPSHOT_SCRIPT = """
(elements, args) => {
  const [attr, limit] = args;
  document.querySelectorAll('[' + attr + ']').forEach(el => el.removeAttribute(attr));
  const out = [];
  for (const el of elements) {
    if (out.length >= limit) break;
    const label = el.innerText || el.getAttribute('aria-label') || el.getAttribute('title') || '';
    const text = label.trim().replace(/\\s+/g, ' ');
    const href = el.href || el.getAttribute('href') || '';
    if (!text && !href) continue;
    const rect = el.getBoundingClientRect();
    const idx = out.length;
    el.setAttribute(attr, String(idx));
    out.push({
      index: idx,
      tag: el.tagName.toLowerCase(),
      text: text.slice(0, 100),
      href: String(href).slice(0, 200),
      visible: rect.width > 0 && rect.height > 0,
    });
  }
  return out;
}
"""

_LINKS_SCRIPT = """
(links, limit) => links.slice(0, limit).map(a => [
  (a.innerText || a.getAttribute('aria-label') || '').trim().replace(/\\s+/g, ' ').slice(0, 80),
  a.href,
])
"""

_HREFS_SCRIPT = "links => links.map(a => a.href).filter(href => href)"

_UNTARGET_SCRIPT = """
el => {
  el.removeAttribute('target');
  const anchor = el.closest('a');
  if (anchor) anchor.removeAttribute('target');
}
"""

OBSERVE_PROMPT = """You are controlling a web browser on the page {url}.
The page contains these interactive elements (index | tag | text | href | visible):
{elements}

Task: {instruction}

Answer with JSON of the form {{"elements": [{{"index": <number>, "reason": "<short reason>"}}]}}
listing only elements that accomplish the task, best match first.
Elements inside menus or submenus count even when not visible.
Answer {{"elements": []}} if no element fits."""

EXTRACT_PROMPT = """Extract structured data from the web page below.

Instruction: {instruction}

Answer with one JSON object that matches this JSON schema:
{schema}

Use null for values that are not on the page. Never invent data.

Page URL: {url}

Page links (text -> href):
{links}

Page text:
{text}"""


def parse_json_payload(text: str) -> Optional[Any]:
    """Leniently parse an LLM answer into a JSON object or list."""
    if not text:
        return None

    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*|\s*```$", "", cleaned, flags=re.IGNORECASE).strip()

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{.*\}", cleaned, flags=re.DOTALL)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return None


def _compact_text(text: str, max_chars: int) -> str:
    text = re.sub(r"[ \t\r\f\v]+", " ", text or "")
    text = re.sub(r"\n\s*\n+", "\n", text)
    return text.strip()[:max_chars]


class BrowserAgent(PageActionProvider):
    """Single Playwright page plus an Ollama model grounding natural-language instructions"""

    def __init__(self, config) -> None:
        self.config = config
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        self.model = config.get_llm_model()
        self.temperature = config.get_llm_temperature()
        self.max_page_chars = config.get_llm_max_page_chars()
        self.max_elements = config.get_llm_max_elements()
        self.navigation_timeout = config.get_navigation_timeout()
        self.action_timeout = config.get_action_timeout()
        self.page_timeout = config.get_page_timeout()

        client_kwargs: dict[str, Any] = {"timeout": config.get_llm_request_timeout()}
        host = config.get_llm_host()
        if host:
            client_kwargs["host"] = host
        self.client = ollama.Client(**client_kwargs)

    # === Lifecycle ===

    def start(self) -> None:
        """Launch Chromium and open the single working page"""
        logger.info("Starting browser...")
        self.playwright = sync_playwright().start()
        channel = self.config.get_browser_channel() or None
        executable_path = self.config.get_browser_executable_path() or None

        if executable_path and not Path(executable_path).exists():
            logger.warning("Browser executable not found: %s", executable_path)
            executable_path = None

        self.browser = self.playwright.chromium.launch(
            headless=self.config.is_headless(),
            channel=channel,
            executable_path=executable_path,
            timeout=self.config.get_launch_timeout(),
            args=[
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
                "--no-first-run",
            ],
        )
        self.context = self.browser.new_context(
            viewport=self.config.get_viewport(),
            user_agent=self.config.get_user_agent(),
        )
        self.page = self.context.new_page()
        self.page.set_default_timeout(self.page_timeout)
        self.page.set_default_navigation_timeout(self.navigation_timeout)

        if self.config.use_stealth():
            try:
                from playwright_stealth.stealth import Stealth
                Stealth().apply_stealth_sync(self.page)
                logger.info("Playwright stealth enabled")
            except Exception as exc:
                logger.warning("Failed to enable stealth mode: %s", exc)

        logger.info("Browser started successfully (model=%s)", self.model)

    def stop(self) -> None:
        """Clean up browser resources"""
        try:
            if self.context:
                self.context.close()
        except Exception:
            logger.debug("Browser context close failed", exc_info=True)
        try:
            if self.browser:
                self.browser.close()
        except Exception:
            logger.debug("Browser close failed", exc_info=True)
        try:
            if self.playwright:
                self.playwright.stop()
        except Exception:
            logger.debug("Playwright stop failed", exc_info=True)
        self.page = None
        self.context = None
        self.browser = None
        self.playwright = None
        logger.info("Browser closed")

    def _require_page(self) -> Page:
        if self.page is None:
            raise RuntimeError("Browser not started - call start() first")
        return self.page

    # === Navigation ===

    def goto(self, url: str, timeout_ms: Optional[int] = None) -> None:
        page = self._require_page()
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms or self.navigation_timeout)
        except PlaywrightError as exc:
            raise NavigationError(f"Navigation to {url} failed: {exc}") from exc

    def url(self) -> str:
        return self._require_page().url

    def hrefs(self) -> List[str]:
        try:
            return list(self._require_page().eval_on_selector_all("a[href]", _HREFS_SCRIPT))
        except PlaywrightError as exc:
            logger.warning("Reading anchors failed: %s", exc)
            return []

    def wait_for_timeout(self, ms: int) -> None:
        if ms > 0:
            self._require_page().wait_for_timeout(ms)

    def wait_for_load_state(self, state: str = "load", timeout_ms: Optional[int] = None) -> None:
        try:
            self._require_page().wait_for_load_state(state, timeout=timeout_ms or self.page_timeout)
        except PlaywrightError as exc:
            logger.debug("wait_for_load_state(%s) gave up: %s", state, exc)

    # === LLM-backed primitives ===

    def observe(self, instruction: str) -> List[ActionCandidate]:
        page = self._require_page()
        try:
            elements = page.eval_on_selector_all(
                INTERACTIVE_SELECTOR, _SNAPSHOT_SCRIPT, [INDEX_ATTRIBUTE, self.max_elements]
            )
        except PlaywrightError as exc:
            logger.warning("Element snapshot failed: %s", exc)
            return []
        if not elements:
            return []

        lines = [
            f"{e['index']} | {e['tag']} | {e['text']} | {e['href']} | {'yes' if e['visible'] else 'no'}"
            for e in elements
        ]
        prompt = OBSERVE_PROMPT.format(url=page.url, elements="\n".join(lines), instruction=instruction)

        try:
            payload = parse_json_payload(self._generate(prompt))
        except Exception as exc:
            logger.warning("observe() LLM call failed: %s", exc)
            return []

        by_index = {e["index"]: e for e in elements}
        candidates: List[ActionCandidate] = []
        seen: set[int] = set()
        entries = payload.get("elements") if isinstance(payload, dict) else payload
        if not isinstance(entries, list):
            entries = []
        for entry in entries:
            raw_index = entry.get("index") if isinstance(entry, dict) else entry
            try:
                index = int(raw_index)
            except (TypeError, ValueError):
                continue
            if index not in by_index or index in seen:
                continue
            seen.add(index)
            element = by_index[index]
            candidates.append(ActionCandidate(
                selector=f"[{INDEX_ATTRIBUTE}='{index}']",
                description=element["text"] or element["href"],
                method="click",
            ))

        logger.debug("observe(%r) -> %s candidates", instruction, len(candidates))
        return candidates

    def act(self, action: Union[ActionCandidate, str]) -> None:
        if isinstance(action, str):
            candidates = self.observe(action)
            if not candidates:
                raise ActionError(f"No element matches instruction: {action}")
            action = candidates[0]

        page = self._require_page()
        locator = page.locator(action.selector).first
        try:
            locator.evaluate(_UNTARGET_SCRIPT)
            if action.method == "fill":
                value = str(action.arguments[0]) if action.arguments else ""
                locator.fill(value, timeout=self.action_timeout)
            else:
                locator.click(timeout=self.action_timeout)
        except PlaywrightError as exc:
            href = self._href_of(locator)
            if action.method != "click" or not href.startswith("http"):
                raise ActionError(f"Could not {action.method} {action.selector}: {exc}") from exc
            # Hidden submenu links: follow the href instead of clicking
            logger.debug("Click failed, following href %s", href)
            try:
                self.goto(href)
            except NavigationError as nav_exc:
                raise ActionError(str(nav_exc)) from nav_exc

        self.wait_for_load_state("domcontentloaded", timeout_ms=self.action_timeout)

    def extract(self, instruction: str, schema: Type[SchemaT]) -> SchemaT:
        page = self._require_page()
        try:
            text = page.inner_text("body", timeout=self.page_timeout)
            links = page.eval_on_selector_all("a[href]", _LINKS_SCRIPT, 150)
        except PlaywrightError as exc:
            raise ExtractionError(f"Reading page content failed: {exc}") from exc

        prompt = EXTRACT_PROMPT.format(
            instruction=instruction,
            schema=json.dumps(schema.model_json_schema(), ensure_ascii=False),
            url=page.url,
            links="\n".join(f"{label} -> {href}" for label, href in links if href),
            text=_compact_text(text, self.max_page_chars),
        )

        try:
            raw = self._generate(prompt)
        except Exception as exc:
            raise ExtractionError(f"LLM extraction failed: {exc}") from exc

        payload = parse_json_payload(raw)
        if isinstance(payload, list):
            first_field = next(iter(schema.model_fields), None)
            payload = {first_field: payload} if first_field else None
        if not isinstance(payload, dict):
            raise ExtractionError("LLM returned no JSON object")

        payload = {key: value for key, value in payload.items() if value is not None}
        try:
            return schema.model_validate(payload)
        except ValidationError as exc:
            raise ExtractionError(f"Extraction did not match schema ({exc.error_count()} errors)") from exc

    def _generate(self, prompt: str) -> str:
        response = self.client.generate(
            model=self.model,
            prompt=prompt,
            format="json",
            options={"temperature": self.temperature},
        )
        return (response.get("response") or "").strip()

    @staticmethod
    def _href_of(locator) -> str:
        try:
            return locator.evaluate("el => (el.closest('a') || el).href || ''") or ""
        except PlaywrightError:
            return ""
