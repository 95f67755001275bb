"""
accessibility_heuristic.py - Images served without alt text.

Usage:
    missing = count_images_missing_alt(html_content)
"""

from bs4 import BeautifulSoup


def count_images_missing_alt(html: str) -> int:
    """Every <img> with no alt attribute at all; alt="" counts as present."""
    if not html:
        return 0
    soup = BeautifulSoup(html, "html.parser")
    return sum(1 for img in soup.find_all("img") if not img.has_attr("alt"))
