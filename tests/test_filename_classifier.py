import pytest

from models.image_record import UNCLASSIFIED
from services.filename_classifier import (
    FilenameClassifier,
    ServiceRule,
    classify_filename,
    prefix_rule,
    strip_extension,
)


@pytest.mark.parametrize(
    "filename, service, theme",
    [
        ("ETFG_2차전지.png", "ETFG", "2차전지"),
        ("COMPG_반도체.jpg", "COMPG", "반도체"),
        ("리타민_배당주.webp", "리타민", "배당주"),
        ("ETFG_2차전지_v2.png", "ETFG", "2차전지_v2"),
    ],
)
def test_known_service_prefix(filename, service, theme):
    assert classify_filename(filename) == (service, theme)


def test_unknown_prefix_uses_last_segment_as_theme():
    assert classify_filename("draft_banner_AI.png") == (UNCLASSIFIED, "AI")


def test_no_separator_is_unclassified():
    assert classify_filename("banner.png") == (UNCLASSIFIED, UNCLASSIFIED)


def test_prefix_requires_separator():
    # "ETFGX" is not the ETFG service
    assert classify_filename("ETFGX_theme.png") == (UNCLASSIFIED, "theme")


def test_only_last_extension_is_stripped():
    assert strip_extension("ETFG_a.b.png") == "ETFG_a.b"
    assert classify_filename("ETFG_a.b.png").theme == "a.b"


def test_rules_are_evaluated_in_order():
    classifier = FilenameClassifier([prefix_rule("ETF_G"), prefix_rule("ETF")])
    assert classifier.classify("ETF_G_theme.png") == ("ETF_G", "theme")

    reversed_classifier = FilenameClassifier([prefix_rule("ETF"), prefix_rule("ETF_G")])
    assert reversed_classifier.classify("ETF_G_theme.png") == ("ETF", "G_theme")


def test_custom_predicate_rule():
    rule = ServiceRule(
        label="LOWER",
        matches=lambda stem: stem.lower().startswith("lower_"),
        theme_of=lambda stem: stem[len("lower_"):],
    )
    classifier = FilenameClassifier([rule])
    assert classifier.classify("Lower_sky.png") == ("LOWER", "sky")


def test_rule_label_need_not_match_prefix_length():
    rule = ServiceRule(
        label="리타민",
        matches=lambda stem: stem.startswith("RETAMIN-"),
        theme_of=lambda stem: stem.split("-", 1)[1],
    )
    classifier = FilenameClassifier([rule])
    assert classifier.classify("RETAMIN-배당주.png") == ("리타민", "배당주")
