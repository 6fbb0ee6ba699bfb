"""HTML 解析工具."""

from urllib.parse import urljoin

from bs4 import BeautifulSoup


def find_rel_alternates(html: bytes | str, base_url: str | None = None) -> list[str]:
    """
    查找页面中的 <link rel="alternate" href="..."> 并提取 href.

    标签名、属性名和 rel 的值都区分大小写，结果保持文档顺序。
    页面按 XML 宽松模式解析（lxml recover），不会把名称转为小写。

    Args:
        html: HTML 内容
        base_url: 页面 URL，用于把相对地址转为绝对地址

    Returns:
        候选 Feed URL 列表
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "xml")

    candidates: list[str] = []
    for link in soup.find_all("link", href=True):
        if link.get("rel") != "alternate":
            continue
        href = link["href"]
        # 确保是字符串
        if isinstance(href, list):
            href = href[0] if href else ""
        href = href.strip()
        if not href:
            continue
        candidates.append(urljoin(base_url, href) if base_url else href)

    return candidates
