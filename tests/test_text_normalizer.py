# tests/test_text_normalizer.py
"""Unit tests for query normalization and the person-name heuristic."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from portaria.services.query_classifier import looks_like_person_name
from portaria.services.text_normalizer import CONTEXT_TOKENS, normalize, strip_accents


class TestStripAccents:
    def test_removes_marks_and_uppercases(self):
        assert strip_accents("  João Conceição ") == "JOAO CONCEICAO"

    def test_plain_text_untouched(self):
        assert strip_accents("ABC1D23") == "ABC1D23"


class TestNormalize:
    def test_short_name_gets_repeated_with_context(self):
        result = normalize("Alecsander Silva")
        assert result.startswith("PESSOA NOME ALECSANDER SILVA VISITANTE ALECSANDER SILVA")
        assert result.endswith("ALECSANDER SILVA")
        for token in CONTEXT_TOKENS:
            assert token in result

    def test_visitor_keyword_only_prefixes_context(self):
        result = normalize("entregador ifood")
        assert result == " ".join(CONTEXT_TOKENS) + " ENTREGADOR IFOOD"

    def test_long_query_is_only_cleaned(self):
        raw = "visitante que entrou pela portaria principal com carro prata ontem à noite"
        assert len(raw) >= 50
        assert normalize(raw) == strip_accents(raw)


class TestLooksLikePersonName:
    def test_full_name(self):
        assert looks_like_person_name("NICOLAS MORAES SALVADOR") is True

    def test_accented_lowercase_name(self):
        assert looks_like_person_name("josé da conceição") is True

    def test_resident_keyword_rejects(self):
        assert looks_like_person_name("MORADOR APT 236") is False

    def test_single_word_rejects(self):
        assert looks_like_person_name("JOAO") is False

    def test_particles_do_not_count(self):
        assert looks_like_person_name("MARIA DE") is False

    def test_custom_keywords(self):
        assert looks_like_person_name("CASA AZUL", resident_keywords=["CASA"]) is False
        assert looks_like_person_name("CASA AZUL", resident_keywords=[]) is True
