"""扫描模块：枚举页面上可寻址的元素与所有能发现的 URL"""

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urldefrag, urljoin

from .channel import PageQueryChannel, parse_payload
from .config import TITLE_MAX_LENGTH
from .models import ElementSnapshot, snapshot_from_rect

LIST_ELEMENTS_JS = """
() => {
    const elements = [];
    for (const el of document.querySelectorAll('*')) {
        const className = typeof el.className === 'string' ? el.className : '';
        // 仅处理包含 id 或 className 的元素
        if (!el.id && !className) continue;

        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        elements.push({
            id: el.id || '',
            className,
            tag: el.tagName,
            title: el.title || '',
            href: (typeof el.href === 'string' && el.href) || el.getAttribute('data-href') || '',
            left: rect.left,
            top: rect.top,
            width: rect.width,
            height: rect.height,
            visibility: style.visibility,
            display: style.display
        });
    }
    return JSON.stringify({
        elements,
        viewport: { width: window.innerWidth, height: window.innerHeight }
    });
}
"""

# 只收集原始字符串，正则提取与规范化在 Python 端完成
LIST_URLS_JS = """
() => {
    const entries = [];
    const push = (kind, value, base) => {
        if (typeof value === 'string' && value.trim()) {
            entries.push({ kind, value: value.trim(), base });
        }
    };
    const urlAttributes = ['action', 'formaction', 'poster', 'manifest', 'cite',
                           'background', 'longdesc', 'codebase', 'usemap', 'srcset'];

    const scan = (doc) => {
        const base = doc.baseURI;
        doc.querySelectorAll('a[href], area[href]').forEach(a => push('url', a.getAttribute('href'), base));
        doc.querySelectorAll('[data-href]').forEach(el => push('url', el.getAttribute('data-href'), base));
        doc.querySelectorAll('[onclick]').forEach(el => push('onclick', el.getAttribute('onclick'), base));
        doc.querySelectorAll('img[src], script[src], iframe[src], frame[src], embed[src], ' +
                             'video[src], audio[src], source[src], track[src], input[src]')
            .forEach(el => push('url', el.getAttribute('src'), base));
        doc.querySelectorAll('link[href]').forEach(el => push('url', el.getAttribute('href'), base));
        doc.querySelectorAll('object[data]').forEach(el => push('url', el.getAttribute('data'), base));

        doc.querySelectorAll('meta[content]').forEach(meta => {
            const name = (meta.getAttribute('property') || meta.getAttribute('name') || '').toLowerCase();
            const equiv = (meta.getAttribute('http-equiv') || '').toLowerCase();
            if (equiv === 'refresh') push('refresh', meta.getAttribute('content'), base);
            else if (name.startsWith('og:') || name === 'twitter:image') push('meta', meta.getAttribute('content'), base);
        });

        for (const attr of urlAttributes) {
            doc.querySelectorAll('[' + attr + ']').forEach(el => push(attr === 'srcset' ? 'srcset' : 'url', el.getAttribute(attr), base));
        }

        doc.querySelectorAll('*').forEach(el => {
            for (const attr of el.attributes) {
                if (attr.name.startsWith('data-') && attr.name !== 'data-href') push('data', attr.value, base);
            }
            const inline = el.getAttribute('style');
            if (inline && inline.includes('url(')) push('style', inline, base);
            try {
                const bg = doc.defaultView.getComputedStyle(el).backgroundImage;
                if (bg && bg !== 'none') push('css', bg, base);
            } catch (e) {}
        });
    };

    scan(document);
    document.querySelectorAll('iframe').forEach(frame => {
        try {
            if (frame.contentDocument) scan(frame.contentDocument);
        } catch (e) {}
    });

    return JSON.stringify({ baseUrl: document.baseURI, entries });
}
"""

LOCATION_ASSIGN_RE = re.compile(r"""location(?:\.href)?\s*=\s*['"]([^'"]+)['"]""")
CSS_URL_RE = re.compile(r"""url\(\s*['"]?([^'")]+?)['"]?\s*\)""")
REFRESH_URL_RE = re.compile(r"""url\s*=\s*['"]?([^'"]+)['"]?""", re.IGNORECASE)

SKIPPED_SCHEMES = ("javascript:", "data:")


class PageInventory:
    """扫描模块：元素列表与 URL 列表，只读"""

    def __init__(self, channel: PageQueryChannel):
        self.channel = channel

    async def list_elements(self) -> List[ElementSnapshot]:
        try:
            raw = await self.channel.evaluate(LIST_ELEMENTS_JS)
        except Exception as e:
            raw = f"ERROR: {e}"
        payload, error = parse_payload(raw)
        if not isinstance(payload, dict):
            print(f"❌ 元素扫描失败: {error or payload}")
            return []

        viewport = payload.get("viewport") or {}
        width = float(viewport.get("width", 0))
        height = float(viewport.get("height", 0))

        snapshots = []
        for item in payload.get("elements") or []:
            identifier = synthesize_identifier(item.get("id", ""), item.get("className", ""), item.get("tag", ""))
            if identifier is None:
                continue
            title = (item.get("title") or "")[:TITLE_MAX_LENGTH]
            snapshots.append(snapshot_from_rect(identifier, title, item, width, height, item.get("href")))

        print(f"✓ [扫描] 共 {len(snapshots)} 个元素，其中可见 {sum(s.is_visible for s in snapshots)} 个")
        return snapshots

    async def list_urls(self) -> List[str]:
        try:
            raw = await self.channel.evaluate(LIST_URLS_JS)
        except Exception as e:
            raw = f"ERROR: {e}"
        payload, error = parse_payload(raw)
        if not isinstance(payload, dict):
            print(f"❌ URL 扫描失败: {error or payload}")
            return []

        urls = collect_urls(payload.get("entries") or [], payload.get("baseUrl") or "")
        print(f"✓ [扫描] 共发现 {len(urls)} 个 URL")
        return urls


def synthesize_identifier(element_id: str, class_name: str, tag: str) -> Optional[str]:
    """#id 优先，其次 .class1.class2，最后小写标签名；无 id 且无 class 的返回 None"""
    if element_id:
        return f"#{element_id}"
    classes = class_name.split() if isinstance(class_name, str) else []
    if classes:
        return "." + ".".join(classes)
    if class_name:
        return (tag or "").lower() or None
    return None


def collect_urls(entries: Iterable[Dict], base_url: str) -> List[str]:
    """按条目类型提取原始值，规范化后按出现顺序去重"""
    found: Dict[str, None] = {}
    for entry in entries:
        kind = entry.get("kind")
        value = entry.get("value") or ""
        base = entry.get("base") or base_url
        for candidate in extract_candidates(kind, value):
            normalized = normalize_url(candidate, base)
            if normalized:
                found.setdefault(normalized, None)
    return list(found)


def extract_candidates(kind: str, value: str) -> List[str]:
    if kind == "onclick":
        return LOCATION_ASSIGN_RE.findall(value)
    if kind == "css":
        return CSS_URL_RE.findall(value)
    if kind == "style":
        return [url for url in CSS_URL_RE.findall(value) if looks_like_url(url)]
    if kind == "data":
        return [value] if looks_like_url(value) else []
    if kind == "refresh":
        match = REFRESH_URL_RE.search(value)
        return [match.group(1)] if match else []
    if kind == "srcset":
        return [part.strip().split()[0] for part in value.split(",") if part.strip()]
    return [value]


def looks_like_url(value: str) -> bool:
    """绝对地址、协议相对地址或以 / 开头的根路径"""
    value = value.strip()
    return value.startswith(("http://", "https://", "//", "/"))


def normalize_url(raw: str, base: str) -> Optional[str]:
    """
    相对地址按所在文档解析为绝对地址并去掉 #hash。

    javascript:/data: 跳过；解析失败的保留原始字符串。
    """
    raw = raw.strip()
    if not raw or raw.lower().startswith(SKIPPED_SCHEMES):
        return None
    try:
        absolute = urljoin(base, raw) if base else raw
        return urldefrag(absolute)[0]
    except ValueError:
        return raw
