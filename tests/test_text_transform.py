from __future__ import annotations

from decimal import Decimal

import pytest

from core.config import TransformConfig
from core.text_transform import (
    Tier,
    classify_tier,
    format_amount,
    rewrite_prices,
    strip_marker,
    tidy_blank_lines,
    transform,
    transform_line,
)

TRIPLE = TransformConfig(price_multiplier=3)


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("R$ 90,00", "R$270,00"),
        ("R$90,00", "R$270,00"),
        ("R$90", "R$270,00"),
        ("$90,00", "R$270,00"),
        ("$90", "R$270,00"),
        ("$$90,00", "R$270,00"),
        ("$$90", "R$270,00"),
        ("90,00$$", "R$270,00"),
        ("90$$", "R$270,00"),
        ("90,00$", "R$270,00"),
        ("90$", "R$270,00"),
        ("90,00", "R$270,00"),
        ("90.00", "R$270,00"),
        ("Produto - R$ 45,50", "Produto - R$136,50"),
        ("Preço: $120", "Preço: R$360,00"),
        ("Valor 75,00 em estoque", "Valor R$225,00 em estoque"),
        ("Custa 99.99 reais", "Custa R$299,97 reais"),
        ("Item $$150,00 disponível", "Item R$450,00 disponível"),
        ("Promoção 80,00$$ hoje", "Promoção R$240,00 hoje"),
    ],
)
def test_price_formats_are_recognized(line: str, expected: str) -> None:
    rewritten, count = rewrite_prices(line, 3)
    assert rewritten == expected
    assert count == 1


def test_every_price_in_a_line_is_rewritten() -> None:
    assert rewrite_prices("Kit R$15,00 + R$20,00", 2)[0] == "Kit R$30,00 + R$40,00"
    rewritten, count = rewrite_prices("Opção A: 45,50 ou Opção B: 89,90", 3)
    assert rewritten == "Opção A: R$136,50 ou Opção B: R$269,70"
    assert count == 2


def test_multiplier_examples() -> None:
    assert rewrite_prices("R$90,00", 2)[0] == "R$180,00"
    assert rewrite_prices("$90", 3)[0] == "R$270,00"
    assert rewrite_prices("90,00", 1.5)[0] == "R$135,00"


def test_zero_amount_is_left_verbatim() -> None:
    rewritten, count = rewrite_prices("Frete R$0,00", 3)
    assert rewritten == "Frete R$0,00"
    assert count == 0


def test_text_without_prices_is_untouched() -> None:
    line = "Numeração disponível: 34/36/37/39/40 🚨"
    assert rewrite_prices(line, 3) == (line, 0)


def test_format_amount_uses_comma_and_half_up() -> None:
    assert format_amount(Decimal("1234.5")) == "R$1234,50"
    assert format_amount(Decimal("0.125")) == "R$0,13"


def test_classify_tier_wholesale_wins() -> None:
    assert classify_tier("Atacado: R$50,00 Varejo: R$100,00", TRIPLE) is Tier.WHOLESALE
    assert classify_tier("R$190,00 - VAREJO", TRIPLE) is Tier.RETAIL_ONLY
    assert classify_tier("R$190,00", TRIPLE) is Tier.NONE


def test_strip_marker_removes_dash_and_colon() -> None:
    assert strip_marker("R$170,00 - Atacado 📲", "Atacado") == "R$170,00 📲"
    assert strip_marker("Atacado: R$50,00", "Atacado") == "R$50,00"
    assert strip_marker("Tênis R$170,00 - atacado", "Atacado") == "Tênis R$170,00"


def test_line_with_both_markers_keeps_stripped_rewritten_content() -> None:
    result = transform_line("Atacado: R$50,00 Varejo: R$100,00", TRIPLE)
    assert result.tier is Tier.WHOLESALE
    assert result.text == "R$150,00 Varejo: R$300,00"
    assert result.prices_rewritten == 2


def test_retail_only_line_becomes_empty() -> None:
    result = transform_line("R$190,00 - Varejo 📲🤎", TRIPLE)
    assert result.text == ""
    assert result.dropped


def test_unmarked_line_is_only_price_rewritten() -> None:
    result = transform_line("Tênis Nike R$100,00 🔥", TRIPLE)
    assert result.tier is Tier.NONE
    assert result.text == "Tênis Nike R$300,00 🔥"


def test_tidy_collapses_blank_runs_and_trims_edges() -> None:
    lines = ["", "a", "", "  ", "", "b", " ", "c", "", ""]
    assert tidy_blank_lines(lines) == ["a", "", "b", " ", "c"]


def test_transform_full_message() -> None:
    body = (
        "New New New \n"
        "\n"
        "Tênis Adidas Gazelle 💚🩷🤎\n"
        "• Premium\n"
        "\n"
        "Numeração disponível: 34/36/37/39/40 🚨\n"
        "\n"
        "R$170,00 - Atacado 📲\n"
        "R$190,00 - Varejo 📲🤎"
    )
    result = transform(body, TransformConfig(price_multiplier=2.5))
    assert result.text.endswith("34/36/37/39/40 🚨\n\nR$425,00 📲")
    assert "Varejo" not in result.text
    assert result.prices_rewritten == 1


def test_transform_handles_crlf() -> None:
    result = transform("Linha 1 R$10,00\r\nLinha 2", TRIPLE)
    assert result.text == "Linha 1 R$30,00\nLinha 2"


def test_transform_can_be_empty() -> None:
    assert transform("", TRIPLE).is_empty
    assert transform("R$190,00 - Varejo", TRIPLE).is_empty
    assert transform("\n\n  \n", TRIPLE).text == ""


def test_end_to_end_line_example() -> None:
    assert transform("Tênis R$170,00 - Atacado", TRIPLE).text == "Tênis R$510,00"


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Tênis Nike 42 R$170,00", "Tênis Nike 42 R$510,00"),
        ("Linha 1 R$10,00", "Linha 1 R$30,00"),
        ("Tam 10 $$90", "Tam 10 R$270,00"),
        ("Kit 2 $ 15,00", "Kit 2 R$45,00"),
    ],
)
def test_number_before_prefixed_price_is_kept(line: str, expected: str) -> None:
    rewritten, count = rewrite_prices(line, 3)
    assert rewritten == expected
    assert count == 1


def test_size_before_wholesale_price_survives_transform() -> None:
    result = transform("Tênis Nike 42 R$170,00 - Atacado", TRIPLE)
    assert result.text == "Tênis Nike 42 R$510,00"
