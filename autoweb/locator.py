"""定位模块：把元素描述解析为当前的位置与可见性快照"""

from typing import Dict, List

from .channel import PageQueryChannel, is_error, parse_payload
from .models import ElementDescriptor, ErrorKind, LocateResult, snapshot_from_rect

# 候选元素收集：各策略结果累积，不因前面命中而停止。
# 元素身份用页面侧 WeakMap 编号，不修改 DOM。
LOCATE_ELEMENT_JS = """
(identifier) => {
    try {
        identifier = identifier || '';
        window.__autowebKeys = window.__autowebKeys || new WeakMap();
        const keyOf = (el) => {
            if (!window.__autowebKeys.has(el)) {
                window.__autowebSeq = (window.__autowebSeq || 0) + 1;
                window.__autowebKeys.set(el, window.__autowebSeq);
            }
            return window.__autowebKeys.get(el);
        };

        const candidates = [];
        const collect = (nodes, method) => {
            for (const el of nodes) {
                const rect = el.getBoundingClientRect();
                const style = window.getComputedStyle(el);
                candidates.push({
                    key: keyOf(el),
                    method,
                    title: el.title || el.getAttribute('title') || '',
                    left: rect.left,
                    top: rect.top,
                    width: rect.width,
                    height: rect.height,
                    visibility: style.visibility,
                    display: style.display
                });
            }
        };

        // 1. 通过 ID 查找
        if (identifier && !identifier.startsWith('.') && !identifier.startsWith('#')) {
            const byId = document.getElementById(identifier);
            if (byId) collect([byId], 'getElementById');
        }

        // 2. 原样作为选择器
        if (identifier) {
            try {
                collect(document.querySelectorAll(identifier), 'querySelector');
            } catch (e) {}
        }

        // 3. 类名
        if (identifier.startsWith('.')) {
            collect(document.getElementsByClassName(identifier.substring(1)), 'getElementsByClassName');
        }

        // 4. 属性选择器兜底
        const fallbacks = [
            '[data-id="' + identifier + '"]',
            '[data-game-id="' + identifier + '"]',
            '[id*="' + identifier + '"]',
            '[class*="' + identifier + '"]'
        ];
        for (const selector of fallbacks) {
            try {
                collect(document.querySelectorAll(selector), 'attribute selector: ' + selector);
            } catch (e) {}
        }

        return JSON.stringify({
            candidates,
            viewport: { width: window.innerWidth, height: window.innerHeight }
        });
    } catch (e) {
        return 'ERROR: ' + e.message;
    }
}
"""

PROBE_ELEMENT_JS = """
(identifier) => {
    const results = [];
    let found = null;
    const note = (label, nodes) => {
        results.push(label + ': ' + (nodes.length > 0 ? '找到' + nodes.length + '个' : '未找到'));
        if (nodes.length > 0 && !found) found = nodes[0];
    };
    try {
        if (identifier.startsWith('.')) {
            note('getElementsByClassName', document.getElementsByClassName(identifier.substring(1)));
        }
        const byId = document.getElementById(identifier);
        note('getElementById', byId ? [byId] : []);
        try {
            note('querySelector', document.querySelectorAll(identifier));
        } catch (e) {
            results.push('querySelector: 语法错误');
        }
        for (const selector of [
            '[id*="' + identifier + '"]',
            '[class*="' + identifier + '"]',
            '[data-id="' + identifier + '"]',
            '[data-game-id="' + identifier + '"]'
        ]) {
            try {
                const nodes = document.querySelectorAll(selector);
                if (nodes.length > 0) note(selector, nodes);
            } catch (e) {}
        }

        if (found) {
            const rect = found.getBoundingClientRect();
            const style = window.getComputedStyle(found);
            const inViewport = !(rect.bottom < 0 || rect.top > window.innerHeight ||
                                 rect.right < 0 || rect.left > window.innerWidth);
            results.push('元素尺寸: ' + Math.round(rect.width) + 'x' + Math.round(rect.height));
            results.push('CSS visibility: ' + style.visibility);
            results.push('CSS display: ' + style.display);
            results.push('位置: 左=' + Math.round(rect.left) + ', 上=' + Math.round(rect.top));
            results.push('视口内: ' + inViewport);
            results.push('CSS定义尺寸: width=' + style.width + ' height=' + style.height);
            const visible = rect.width > 0 && rect.height > 0 &&
                            style.visibility !== 'hidden' && style.display !== 'none' && inViewport;
            results.push('综合可见性判断: ' + (visible ? '可见' : '不可见'));
        }
    } catch (e) {
        results.push('检测出错: ' + e.message);
    }
    return results.join('; ');
}
"""


class ElementLocator:
    """
    定位模块：多策略收集候选 → 去重 → 按标题挑选。

    只读查询，任何查询错误都转换为带标记的 LocateResult，不向外抛出。
    """

    def __init__(self, channel: PageQueryChannel):
        self.channel = channel

    async def locate(self, descriptor: ElementDescriptor) -> LocateResult:
        try:
            raw = await self.channel.evaluate(LOCATE_ELEMENT_JS, descriptor.identifier)
        except Exception as e:
            # 通道实现之外的异常同样视为查询错误
            return LocateResult(None, ErrorKind.QUERY_ERROR, f"ERROR: {e}")

        payload, error = parse_payload(raw)
        if payload is None:
            return LocateResult(None, ErrorKind.QUERY_ERROR, error)

        try:
            candidates = unique_candidates(payload.get("candidates") or [])
            viewport = payload.get("viewport") or {}
            viewport_width = float(viewport.get("width", 0))
            viewport_height = float(viewport.get("height", 0))
        except (AttributeError, TypeError, ValueError) as e:
            return LocateResult(None, ErrorKind.QUERY_ERROR, f"ERROR: 结果格式异常: {e}")

        if not candidates:
            return LocateResult(
                None, ErrorKind.NOT_FOUND,
                f'ERROR: 未找到标识符为 "{descriptor.identifier}" 的元素',
            )

        chosen, method = choose_candidate(candidates, descriptor.title)
        snapshot = snapshot_from_rect(
            descriptor.identifier, chosen.get("title") or "", chosen,
            viewport_width, viewport_height,
        )
        return LocateResult(
            snapshot,
            search_method=method,
            candidates_found=len(candidates),
        )

    async def probe(self, identifier: str) -> str:
        """调试用：逐项报告各查找方法的命中情况与首个元素的可见性"""
        try:
            result = await self.channel.evaluate(PROBE_ELEMENT_JS, identifier)
        except Exception as e:
            return f"ERROR: {e}"
        if is_error(result):
            return result or "检测失败"
        return result.replace('"', "")


def unique_candidates(candidates: List[Dict]) -> List[Dict]:
    """同一元素可能被多种策略找到，按身份去重并保持首次出现的顺序"""
    seen = set()
    unique = []
    for candidate in candidates:
        key = candidate.get("key")
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


def choose_candidate(candidates: List[Dict], target_title: str):
    """
    标题为空取第一个；否则精确匹配 > 忽略大小写的包含匹配（双向）> 第一个。

    返回 (候选, 查找方式说明)。
    """
    first = candidates[0]
    if not target_title or not target_title.strip():
        return first, first.get("method", "")

    for candidate in candidates:
        if (candidate.get("title") or "") == target_title:
            return candidate, f"{candidate.get('method', '')} (title matched exactly)"

    wanted = target_title.lower()
    for candidate in candidates:
        title = (candidate.get("title") or "").lower()
        if wanted in title or title in wanted:
            return candidate, f"{candidate.get('method', '')} (title matched partially)"

    return first, f"{first.get('method', '')} (fallback: title not matched)"
