from .xml_parser import ArticleParser, parse_xml_batch, parse_paper, parse_authors

__all__ = [
    "ArticleParser",
    "parse_xml_batch",
    "parse_paper",
    "parse_authors",
]
