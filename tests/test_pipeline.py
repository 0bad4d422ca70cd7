"""Command-line entry point, with the E-utilities client replaced by a fake."""

import pytest

import pipeline
from conftest import FakeClient
from test_xml_parsing import EFETCH_XML


@pytest.fixture
def fake_client(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(pipeline.EutilsClient, "from_config", classmethod(lambda cls, config: client))
    return client


def test_read_terms_merges_args_and_file(tmp_path):
    terms_file = tmp_path / "terms.txt"
    terms_file.write_text("brca1\n\n  tp53 \n")
    assert pipeline.read_terms(["egfr"], str(terms_file)) == ["egfr", "brca1", "tp53"]


def test_writes_payloads_to_output(tmp_path, fake_client):
    out = tmp_path / "out.xml"
    code = pipeline.main(["foo bar", "baz", "--output", str(out)])

    assert code == 0
    assert fake_client.searches == ["foo%20bar", "baz"]
    assert out.read_text().count("<PubmedArticleSet>") == 2
    assert fake_client.closed


def test_max_retrieval_option(tmp_path, fake_client):
    code = pipeline.main(["a", "b", "c", "--max-retrieval", "2", "--output", str(tmp_path / "o.xml")])
    assert code == 0
    assert fake_client.searches == ["a,b", "c"]


def test_parse_option_writes_summaries(tmp_path, fake_client):
    fake_client.payload = EFETCH_XML
    out = tmp_path / "articles.tsv"

    code = pipeline.main(["subiculum", "--parse", "--output", str(out)])

    assert code == 0
    assert out.read_text() == "31452104\t2019\tSmith J et al.\tThe subiculum and spatial memory.\n"


def test_abort_exits_non_zero(tmp_path, fake_client):
    fake_client.search_failures = set(range(10))
    code = pipeline.main(["x", "--max-error-count", "1", "--output", str(tmp_path / "o.xml")])

    assert code == 1
    assert len(fake_client.searches) == 2


def test_no_terms(fake_client):
    assert pipeline.main([]) == 2


def test_invalid_max_retrieval(fake_client):
    assert pipeline.main(["x", "--max-retrieval", "500"]) == 2
