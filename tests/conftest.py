"""Pytest configuration and fixtures for the layoutlint test suite.

Path Setup:
    The src directory is added to sys.path to enable imports like:
    ``from layoutlint.engine.service import LintEngine``

Shared helpers:
    SnapshotBuilder builds the JSON payload the in-page capture script
    returns, so detectors can be tested against hand-made layouts and the
    same payload can be served by FakePage to the engine.

    FakePage answers the page functions in ``layoutlint.dom.scripts`` the
    way a real page would, without a browser.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add the src directory to the path so tests can import layoutlint
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from layoutlint.dom import scripts  # noqa: E402
from layoutlint.dom.service import STYLE_PROPERTIES  # noqa: E402
from layoutlint.dom.views import LayoutSnapshot  # noqa: E402


# ---------------------------------------------------------------------------
# Snapshot builder
# ---------------------------------------------------------------------------


class SnapshotBuilder:
    """Builds capture payloads element by element.

    ``html`` and ``body`` exist from the start and fill the viewport. ``add``
    returns the index of the new element, used as ``parent`` for its children.

    Example:
        >>> b = SnapshotBuilder()
        >>> box = b.add("div", b.body, (10, 10, 100, 50), style={"overflow-x": "hidden"})
        >>> snapshot = b.build()
    """

    def __init__(self, width=1280, height=720, token="snap-1"):
        self.width = width
        self.height = height
        self.token = token
        self.nodes = []
        self._styles = []
        self.html = self.add("html", None, (0, 0, width, height))
        self.body = self.add("body", self.html, (0, 0, width, height))

    def add(
        self,
        tag,
        parent,
        rect,
        style=None,
        attrs=None,
        text=None,
        text_runs=None,
        scroll_size=None,
        client_size=None,
        click=False,
        explicit=(False, False),
        ns="html",
        in_scope=True,
        before="none",
        after="none",
    ):
        """Add an element.

        Args:
            rect: (x, y, width, height) border box.
            text: Direct text laid out on one line filling rect.
            text_runs: [(text, [(x, y, w, h), ...]), ...] direct text with line boxes.
            scroll_size: (scrollWidth, scrollHeight), defaults to the client size.
            client_size: (clientWidth, clientHeight), defaults to the rect size.
        """
        x, y, w, h = rect
        client = client_size or (w, h)
        scroll = scroll_size or client
        runs = []
        if text is not None:
            runs.append({"t": text, "r": [[x, y, w, h]]})
        for run_text, rects in text_runs or []:
            runs.append({"t": run_text, "r": [list(r) for r in rects]})

        index = len(self.nodes)
        self.nodes.append(
            {
                "i": index,
                "p": -1 if parent is None else parent,
                "tag": tag,
                "ns": ns,
                "attrs": dict(attrs or {}),
                "rect": [x, y, w, h],
                "clientRects": [[x, y, w, h]] if w > 0 and h > 0 else [],
                "before": before,
                "after": after,
                "scroll": [scroll[0], scroll[1], client[0], client[1]],
                "click": click,
                "explicit": list(explicit),
                "inScope": in_scope,
                "text": runs,
            }
        )
        self._styles.append({"display": "block", **(style or {})})
        return index

    def set_style(self, index, **style):
        """Update computed style values of an existing element, e.g. ``html`` or ``body``."""
        self._styles[index].update({name.replace("_", "-"): value for name, value in style.items()})

    def to_wire(self, token=None):
        properties = list(STYLE_PROPERTIES)
        for style in self._styles:
            properties.extend(name for name in style if name not in properties)
        nodes = []
        for raw, style in zip(self.nodes, self._styles):
            nodes.append({**raw, "style": [style.get(name, "") for name in properties]})
        return {
            "token": token or self.token,
            "viewport": {"width": self.width, "height": self.height, "scrollX": 0, "scrollY": 0},
            "properties": properties,
            "nodes": nodes,
        }

    def build(self) -> LayoutSnapshot:
        return LayoutSnapshot.from_wire(self.to_wire())


# ---------------------------------------------------------------------------
# Fake page
# ---------------------------------------------------------------------------


class FakePage:
    """In-memory stand-in for a browser Page.

    Attributes:
        builder: Layout served to the capture script.
        hit_stacks: Callable (points) -> stacks answering hit tests.
        ignored: selector -> ignore attribute value found on it or an ancestor.
        has_finder: Whether the selector runtime is installed.
        locate_missing: LOCATE answers null, as when the runtime vanished.
        scroll: Current scroll position.
    """

    def __init__(self, builder=None):
        self.builder = builder or SnapshotBuilder()
        self.hit_stacks = lambda points: [[] for _ in points]
        self.ignored = {}
        self.has_finder = True
        self.locate_missing = False
        self.root_ids = ["root-1"]
        self.scroll = {"x": 0, "y": 0}
        self.live_tokens = set()
        self.captures = 0
        self.scope_resolutions = []
        self.scope_releases = 0
        self.locate_calls = []
        self.ignore_queries = []
        self.finder_installs = 0
        self.evaluate = AsyncMock(side_effect=self._evaluate)

    def selector_for(self, index):
        return f"#n{index}"

    def scripts_called(self):
        return [call.args[0] for call in self.evaluate.call_args_list]

    async def _evaluate(self, page_function, arg=None):
        if page_function == scripts.SNAPSHOT_SCRIPT:
            self.captures += 1
            self.live_tokens.add(arg["token"])
            return self.builder.to_wire(arg["token"])
        if page_function == scripts.HIT_TEST_SCRIPT:
            return self.hit_stacks([tuple(p) for p in arg["points"]])
        if page_function == scripts.DISPOSE_SNAPSHOTS_SCRIPT:
            if arg is None:
                self.live_tokens.clear()
            else:
                self.live_tokens.discard(arg)
            return None
        if page_function == scripts.RESOLVE_SCOPE_SCRIPT:
            self.scope_resolutions.append(list(arg["selectors"]))
            return list(self.root_ids)
        if page_function == scripts.RELEASE_SCOPE_SCRIPT:
            self.scope_releases += 1
            return None
        if page_function == scripts.LOCATE_ELEMENTS_SCRIPT:
            self.locate_calls.append(arg)
            if self.locate_missing or not self.has_finder:
                return None
            located = []
            for index in arg["indexes"]:
                raw = self.builder.nodes[index]
                located.append(
                    {
                        "tagName": raw["tag"],
                        "id": raw["attrs"].get("id", ""),
                        "classes": raw["attrs"].get("class", "").split(),
                        "selector": self.selector_for(index),
                    }
                )
            return located
        if page_function == scripts.IGNORED_SELECTORS_SCRIPT:
            self.ignore_queries.append(arg)
            return [s for s in arg["selectors"] if self._ignores(s, arg["ruleIds"])]
        if page_function == scripts.CAPTURE_SCROLL_SCRIPT:
            return dict(self.scroll)
        if page_function == scripts.RESTORE_SCROLL_SCRIPT:
            self.scroll = dict(arg)
            return None
        if page_function == scripts.HAS_FINDER_SCRIPT:
            return self.has_finder
        if page_function == scripts.INSTALL_FINDER_SCRIPT:
            self.finder_installs += 1
            self.has_finder = True
            return None
        raise AssertionError(f"Unexpected page function: {page_function[:60]}")

    def _ignores(self, selector, rule_ids):
        if selector not in self.ignored:
            return False
        tokens = [t for t in self.ignored[selector].replace(",", " ").split() if t]
        return not tokens or "all" in tokens or "*" in tokens or any(r in tokens for r in rule_ids)


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def builder():
    return SnapshotBuilder()


@pytest.fixture()
def fake_page(builder):
    return FakePage(builder)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's layoutlint environment out of the tests."""
    for name in (
        "LAYOUTLINT_CONFIG_PATH",
        "LAYOUTLINT_HEADLESS",
        "LAYOUTLINT_CHROME_PATH",
        "LAYOUTLINT_DEBUG_PORT",
        "LAYOUTLINT_LOGGING_LEVEL",
        "CDP_LOGGING_LEVEL",
        "IN_DOCKER",
    ):
        monkeypatch.delenv(name, raising=False)
