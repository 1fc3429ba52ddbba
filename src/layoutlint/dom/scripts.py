"""JavaScript sources evaluated inside the page.

Each constant is an arrow function passed to Page.evaluate() together with a
JSON argument, except FINDER_INIT_SCRIPT which is a self-installing statement
used as a document-start init script.
"""

SNAPSHOT_STORE = '__layoutlint_snapshots'
FINDER_GLOBAL = '__layoutlint_finder'

# Serializes every element in document order and keeps the live nodes in
# window.__layoutlint_snapshots[token] so ElementRefs can be resolved later.
SNAPSHOT_SCRIPT = """(arg) => {
	const SVG_NS = 'http://www.w3.org/2000/svg';
	const HTML_NS = 'http://www.w3.org/1999/xhtml';
	const store = (window.__layoutlint_snapshots = window.__layoutlint_snapshots || {});
	const elements = [document.documentElement, ...document.documentElement.querySelectorAll('*')];
	store[arg.token] = elements;

	const indexOf = new Map();
	elements.forEach((el, i) => indexOf.set(el, i));

	const inScope = new Set();
	const roots = document.querySelectorAll('[' + arg.rootAttribute + ']');
	for (const root of roots) {
		inScope.add(root);
		for (const el of root.querySelectorAll('*')) inScope.add(el);
	}

	const explicit = new Map();
	const flag = (el, axis) => {
		const entry = explicit.get(el) || [false, false];
		entry[axis] = true;
		explicit.set(el, entry);
	};
	const isSet = (value) => Boolean(value) && value !== 'auto' && value !== 'initial' && value !== 'unset';
	const visitRules = (rules) => {
		for (const rule of rules) {
			if (rule instanceof CSSStyleRule) {
				const w = isSet(rule.style.getPropertyValue('width'));
				const h = isSet(rule.style.getPropertyValue('height'));
				if (!w && !h) continue;
				let matches;
				try {
					matches = document.querySelectorAll(rule.selectorText);
				} catch (e) {
					continue;
				}
				for (const el of matches) {
					if (w) flag(el, 0);
					if (h) flag(el, 1);
				}
			} else if (typeof CSSMediaRule !== 'undefined' && rule instanceof CSSMediaRule) {
				if (window.matchMedia(rule.media.mediaText).matches) visitRules(rule.cssRules);
			} else if (rule.cssRules) {
				visitRules(rule.cssRules);
			}
		}
	};
	for (const sheet of document.styleSheets) {
		let rules;
		try {
			rules = sheet.cssRules;
		} catch (e) {
			continue;
		}
		if (rules) visitRules(rules);
	}

	const box = (r) => [r.left, r.top, r.width, r.height];

	const nodes = elements.map((el, i) => {
		const cs = window.getComputedStyle(el);
		const attrs = {};
		for (const attr of el.attributes) attrs[attr.name] = attr.value;

		const text = [];
		for (const child of el.childNodes) {
			if (child.nodeType !== Node.TEXT_NODE) continue;
			const raw = child.textContent || '';
			if (raw.trim().length === 0) continue;
			const range = document.createRange();
			range.selectNodeContents(child);
			const rects = [];
			for (const r of range.getClientRects()) {
				if (r.width === 0 && r.height === 0) continue;
				rects.push(box(r));
			}
			text.push({ t: raw, r: rects });
		}

		const sized = explicit.get(el) || [false, false];
		if (el.style) {
			if (isSet(el.style.width)) sized[0] = true;
			if (isSet(el.style.height)) sized[1] = true;
		}

		const ns = el.namespaceURI === HTML_NS ? 'html' : el.namespaceURI === SVG_NS ? 'svg' : 'other';
		return {
			i,
			p: el.parentElement && indexOf.has(el.parentElement) ? indexOf.get(el.parentElement) : -1,
			tag: el.localName,
			ns,
			attrs,
			rect: box(el.getBoundingClientRect()),
			clientRects: Array.from(el.getClientRects(), box),
			style: arg.properties.map((name) => cs.getPropertyValue(name)),
			before: window.getComputedStyle(el, '::before').getPropertyValue('content'),
			after: window.getComputedStyle(el, '::after').getPropertyValue('content'),
			scroll: [el.scrollWidth || 0, el.scrollHeight || 0, el.clientWidth || 0, el.clientHeight || 0],
			click: typeof el.onclick === 'function',
			explicit: sized,
			inScope: roots.length === 0 || inScope.has(el),
			text,
		};
	});

	return {
		token: arg.token,
		properties: arg.properties,
		viewport: {
			width: window.innerWidth,
			height: window.innerHeight,
			scrollX: window.scrollX,
			scrollY: window.scrollY,
		},
		nodes,
	};
}"""

# Topmost-first element stacks at each point, as snapshot indexes (-1 for
# elements the snapshot does not know about).
HIT_TEST_SCRIPT = """(arg) => {
	const nodes = (window.__layoutlint_snapshots || {})[arg.token] || [];
	const indexOf = new Map();
	nodes.forEach((el, i) => indexOf.set(el, i));
	return arg.points.map(([x, y]) =>
		document.elementsFromPoint(x, y).map((el) => (indexOf.has(el) ? indexOf.get(el) : -1)),
	);
}"""

DISPOSE_SNAPSHOTS_SCRIPT = """(token) => {
	if (!window.__layoutlint_snapshots) return;
	if (token) {
		delete window.__layoutlint_snapshots[token];
	} else {
		window.__layoutlint_snapshots = {};
	}
}"""

# Marks scope roots with the root-id attribute and returns their ids. With no
# selectors the body is the only root.
RESOLVE_SCOPE_SCRIPT = """(arg) => {
	for (const el of document.querySelectorAll('[' + arg.attribute + ']')) el.removeAttribute(arg.attribute);
	const roots = [];
	if (arg.selectors.length === 0) {
		if (document.body) roots.push(document.body);
	} else {
		for (const selector of arg.selectors) {
			for (const el of document.querySelectorAll(selector)) {
				if (!roots.includes(el)) roots.push(el);
			}
		}
	}
	const newId = () =>
		window.crypto && typeof window.crypto.randomUUID === 'function'
			? window.crypto.randomUUID()
			: Math.random().toString(36).slice(2) + Date.now().toString(36);
	return roots.map((el) => {
		const id = newId();
		el.setAttribute(arg.attribute, id);
		return id;
	});
}"""

RELEASE_SCOPE_SCRIPT = """(attribute) => {
	for (const el of document.querySelectorAll('[' + attribute + ']')) el.removeAttribute(attribute);
}"""

# Returns null when the finder runtime is missing so the caller can raise.
LOCATE_ELEMENTS_SCRIPT = """(arg) => {
	if (typeof window.__layoutlint_finder !== 'function') return null;
	const nodes = (window.__layoutlint_snapshots || {})[arg.token] || [];
	return arg.indexes.map((i) => {
		const el = nodes[i];
		if (!el || !el.isConnected) return null;
		return {
			tagName: el.localName,
			id: el.id || '',
			classes: Array.from(el.classList || []),
			selector: window.__layoutlint_finder(el),
		};
	});
}"""

IGNORED_SELECTORS_SCRIPT = """(arg) => {
	const tokenize = (value) =>
		value
			.split(/[\\s,]+/)
			.map((token) => token.trim())
			.filter((token) => token.length > 0);
	const matchesRule = (tokens) =>
		tokens.length === 0 ||
		tokens.includes('all') ||
		tokens.includes('*') ||
		arg.ruleIds.some((id) => tokens.includes(id));
	return arg.selectors.filter((selector) => {
		let el;
		try {
			el = document.querySelector(selector);
		} catch (e) {
			return false;
		}
		for (let current = el; current; current = current.parentElement) {
			if (!current.hasAttribute(arg.attribute)) continue;
			if (matchesRule(tokenize(current.getAttribute(arg.attribute) || ''))) return true;
		}
		return false;
	});
}"""

CAPTURE_SCROLL_SCRIPT = """() => ({ x: window.scrollX, y: window.scrollY })"""

RESTORE_SCROLL_SCRIPT = """(pos) => window.scrollTo(pos.x, pos.y)"""

HAS_FINDER_SCRIPT = """() => typeof window.__layoutlint_finder === 'function'"""

ADD_STYLE_SCRIPT = """(css) => {
	const style = document.createElement('style');
	style.setAttribute('data-layoutlint-style', '');
	style.textContent = css;
	(document.head || document.documentElement).appendChild(style);
}"""

DISABLE_ANIMATIONS_CSS = """
* {
	animation: none !important;
	transition: none !important;
	scroll-behavior: auto !important;
}
"""

# Selector synthesis: unique id first, then tag/class steps, then an
# :nth-of-type path, each candidate verified with querySelectorAll.
INSTALL_FINDER_SCRIPT = """() => {
	if (typeof window.__layoutlint_finder === 'function') return;
	const escape = (value) =>
		window.CSS && typeof window.CSS.escape === 'function'
			? window.CSS.escape(value)
			: String(value).replace(/[^a-zA-Z0-9_-]/g, '\\\\$&');
	const isUniqueFor = (selector, el) => {
		try {
			const found = document.querySelectorAll(selector);
			return found.length === 1 && found[0] === el;
		} catch (e) {
			return false;
		}
	};
	const nthOfType = (el) => {
		let n = 1;
		for (let s = el.previousElementSibling; s; s = s.previousElementSibling) {
			if (s.localName === el.localName) n += 1;
		}
		return n;
	};
	const steps = (el) => {
		const tag = escape(el.localName);
		const out = [];
		if (el.id) out.push('#' + escape(el.id));
		const classes = Array.from(el.classList || [])
			.slice(0, 3)
			.map((c) => '.' + escape(c));
		if (classes.length > 0) {
			out.push(tag + classes[0]);
			if (classes.length > 1) out.push(tag + classes.join(''));
		}
		out.push(tag);
		out.push(tag + ':nth-of-type(' + nthOfType(el) + ')');
		return out;
	};
	window.__layoutlint_finder = (el) => {
		if (!(el instanceof Element)) throw new Error('finder expects an Element');
		const path = [];
		let current = el;
		while (current) {
			if (current === document.documentElement) {
				path.unshift('html');
				break;
			}
			const candidates = steps(current);
			for (const step of candidates) {
				const selector = [step, ...path].join(' > ');
				if (isUniqueFor(selector, el)) return selector;
			}
			path.unshift(candidates[candidates.length - 1]);
			current = current.parentElement;
		}
		return path.join(' > ');
	};
}"""

# Same installer as a statement, for Page.addScriptToEvaluateOnNewDocument
FINDER_INIT_SCRIPT = f'({INSTALL_FINDER_SCRIPT})();'
