"""Document type / year classification and extension filtering."""

import pytest

from filings_scraper.classifier import classify, extract_year, looks_like_document
from filings_scraper.models import DocumentType


class TestLooksLikeDocument:
    @pytest.mark.parametrize("url", [
        "https://ir.example.com/a.pdf",
        "https://ir.example.com/a.PDF",
        "https://ir.example.com/data/book.xlsx",
        "https://ir.example.com/data/book.xls",
        "https://ir.example.com/bundle.zip?token=abc",
        "https://ir.example.com/a.pdf#page=2",
    ])
    def test_document_extensions(self, url):
        assert looks_like_document(url)

    @pytest.mark.parametrize("url", [
        "https://ir.example.com/investor/overview",
        "https://ir.example.com/download?file=a.pdf",
        "https://ir.example.com/a.pdf/view",
        "https://ir.example.com/a.docx",
    ])
    def test_non_documents(self, url):
        assert not looks_like_document(url)

    def test_custom_extensions(self):
        assert looks_like_document("https://x.com/a.docx", extensions=(".docx",))


class TestYear:
    def test_four_digit_year(self):
        assert extract_year("Annual Report 2023") == "2023"

    def test_fiscal_year_token_kept_verbatim(self):
        assert extract_year("fy24 results") == "FY24"

    def test_first_match_wins(self):
        assert extract_year("FY23 restated in 2024") == "FY23"

    def test_out_of_range(self):
        assert extract_year("Item 1850 and 2150") is None

    def test_none(self):
        assert extract_year("Investor overview") is None


class TestClassify:
    def test_annual_beats_esg(self):
        doc_type, year = classify("Annual ESG Report 2023", "https://ir.example.com/esg.pdf")
        assert doc_type is DocumentType.ANNUAL
        assert year == "2023"

    @pytest.mark.parametrize("text, expected", [
        ("Form 10-K", DocumentType.ANNUAL),
        ("Form 20-F 2022", DocumentType.ANNUAL),
        ("Year End Results", DocumentType.ANNUAL),
        ("Form 10-Q", DocumentType.QUARTERLY),
        ("Q3 results", DocumentType.QUARTERLY),
        ("Semi-Annual Update", DocumentType.QUARTERLY),
        ("Interim statement", DocumentType.QUARTERLY),
        ("Earnings Deck", DocumentType.PRESENTATION),
        ("Investor Day Slides", DocumentType.PRESENTATION),
        ("TCFD disclosure", DocumentType.ESG),
        ("Sustainability Report", DocumentType.ESG),
        ("Proxy statement", DocumentType.OTHER),
    ])
    def test_categories(self, text, expected):
        doc_type, _ = classify(text, "https://ir.example.com/doc.pdf")
        assert doc_type is expected

    def test_quarterly_beats_presentation(self):
        doc_type, _ = classify("Q2 earnings presentation", "https://ir.example.com/doc.pdf")
        assert doc_type is DocumentType.QUARTERLY

    def test_url_contributes(self):
        doc_type, year = classify("Download", "https://ir.example.com/2021/annual-report.pdf")
        assert doc_type is DocumentType.ANNUAL
        assert year == "2021"

    def test_link_text_year_before_url_year(self):
        _, year = classify("Report 2019", "https://ir.example.com/2021/report.pdf")
        assert year == "2019"
