"""PubMed EFetch XML parsing, as pure functions plus a payload handler for the automater."""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from lxml import etree

from extract.api_client import PayloadHandler

logger = logging.getLogger(__name__)


class ArticleParser(PayloadHandler):
    """
    Parses each EFetch payload into article dicts.

    Articles go to ``callback`` when one is given, otherwise they accumulate
    in ``articles``. Install with ``EutilsAutomater.set_parser``.
    """

    def __init__(self, callback: Optional[Callable[[Dict], None]] = None):
        self.callback = callback
        self.articles: List[Dict] = []

    def consume(self, lines: Iterable[str]) -> None:
        xml_string = "\n".join(lines)
        for paper in parse_xml_batch(xml_string):
            if self.callback is not None:
                self.callback(paper)
            else:
                self.articles.append(paper)


def parse_xml_batch(xml_string: str) -> List[Dict]:
    """
    Parse PubMed XML string into list of paper dictionaries.

    Skips papers missing required fields (PMID, title) with logged warnings.
    """
    if not xml_string.strip():
        return []

    root = etree.fromstring(xml_string.encode('utf-8'))
    articles = root.findall('.//PubmedArticle')

    papers = []
    for article in articles:
        paper = parse_paper(article)
        if paper:
            papers.append(paper)

    logger.info(f"Parsed {len(papers)} of {len(articles)} articles")
    return papers


def parse_paper(article_elem: etree.Element) -> Optional[Dict]:
    """
    Parse single <PubmedArticle> element into paper dictionary.

    Returns None if required fields (PMID, title) are missing.
    """
    pmid_elem = article_elem.find('.//MedlineCitation/PMID')
    if pmid_elem is None or not pmid_elem.text:
        logger.warning("Skipping paper - missing PMID")
        return None

    pmid = int(pmid_elem.text)

    title = _get_text(article_elem, './/Article/ArticleTitle')
    if not title:
        logger.warning(f"Skipping paper - missing title (PMID: {pmid})")
        return None

    doi = None
    for article_id in article_elem.findall('.//PubmedData/ArticleIdList/ArticleId'):
        if article_id.get('IdType') == 'doi':
            doi = article_id.text

    # Structured abstracts carry one AbstractText per labelled section
    abstract_parts = []
    for abstract_text in article_elem.findall('.//Abstract/AbstractText'):
        text = ''.join(abstract_text.itertext()).strip()
        label = abstract_text.get('Label')
        abstract_parts.append(f"{label}: {text}" if label else text)
    abstract = ' '.join(abstract_parts).strip() or None

    year = _get_text(article_elem, './/JournalIssue/PubDate/Year')

    return {
        'pmid': pmid,
        'doi': doi,
        'title': title,
        'abstract': abstract,
        'journal_name': _get_text(article_elem, './/Journal/Title'),
        'pub_year': int(year) if year and year.isdigit() else None,
        'authors': parse_authors(article_elem),
    }


def parse_authors(article_elem: etree.Element) -> List[str]:
    """Author names as "Last Initials", in listed order. Collective names are kept whole."""
    authors = []
    for author_elem in article_elem.findall('.//AuthorList/Author'):
        last_name = _get_text(author_elem, 'LastName')
        if last_name:
            initials = _get_text(author_elem, 'Initials')
            authors.append(f"{last_name} {initials}" if initials else last_name)
            continue

        collective = _get_text(author_elem, 'CollectiveName')
        if collective:
            authors.append(collective)

    return authors


def _get_text(element: Optional[etree.Element], xpath: str) -> Optional[str]:
    """Full text content of the first match, whitespace-trimmed."""
    if element is None:
        return None

    child = element.find(xpath)
    if child is None:
        return None

    text = ''.join(child.itertext()).strip()
    return text or None
