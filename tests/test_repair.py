import pytest

from babelmark.repair import HTML_ENTITIES, RepairRules, repair


@pytest.mark.parametrize(
    ("original", "translated", "expected"),
    [
        (
            "Check [this link](https://example.com/path)",
            "Vérifiez [ce lien] (https://example.com/chemin)",
            "Vérifiez [ce lien](https://example.com/path)",
        ),
        (
            "[link1](http://site1.com) and [link2](http://site2.com)",
            "[lien1] (http://site1.com) et [lien2] (http://site2.com)",
            "[lien1](http://site1.com) et [lien2](http://site2.com)",
        ),
        (
            "Jump to [section](#section-id)",
            "Aller à [section] (#section-id)",
            "Aller à [section](#section-id)",
        ),
        (
            "Before [link](http://test.com) after",
            "Avant [lien] (http://test.com/chemin) après",
            "Avant [lien](http://test.com) après",
        ),
        (
            "See [documentation](https://docs.example.com) for **more** info",
            "Voir [documentation] (https://docs.example.com/chemin) pour  ** plus ** infos",
            "Voir [documentation](https://docs.example.com) pour  **plus** infos",
        ),
    ],
)
def test_restores_original_urls(original, translated, expected):
    assert repair(original, translated) == expected


def test_url_with_query_is_not_recorded():
    original = "See [link](https://example.com?param=value&other=123)"
    translated = "Voir [lien] (https://example.com?param=valeur&autre=123)"

    assert repair(original, translated) == translated


def test_translator_inserted_spaces_inside_url_are_removed():
    original = "Read [the guide](/docs/getting-started)"
    translated = "Lire [le guide] (/docs/ demarrage)"

    assert repair(original, translated) == "Lire [le guide](/docs/getting-started)"


def test_urls_are_restored_in_order_of_damaged_links():
    original = "[a](http://a.com) and [b](http://b.com)"
    translated = "[a](http://a.com) et [b] (http://b.org)"

    assert repair(original, translated) == "[a](http://a.com) et [b](http://a.com)"


def test_surplus_damaged_links_are_left_alone():
    original = "[a](http://a.com)"
    translated = "[a] (http://a.fr) [x] (http://x.com)"

    assert repair(original, translated) == "[a](http://a.com) [x] (http://x.com)"


def test_unescapes_all_entities():
    translated = "&quot;test&quot; &gt; &lt; &#39;quote&#39;"

    assert repair("Test", translated) == "\"test\" > < 'quote'"


def test_entity_table_is_read_only():
    with pytest.raises(TypeError):
        HTML_ENTITIES["&amp;"] = "&"  # type: ignore[index]


def test_bold_keeps_leading_space_but_italic_does_not():
    assert repair("**bold**", " ** bold ** ") == " **bold** "
    assert repair("*italic*", " * italic * ") == "*italic* "
    assert repair("**bold** and *italic*", " ** gras ** et  * italique * ") == (
        " **gras** et *italique* "
    )


def test_multiple_bold_markers():
    assert repair("**a** **b**", " ** bold1 ** et  ** bold2 ** ") == (
        " **bold1** et  **bold2** "
    )


@pytest.mark.parametrize(
    ("translated", "expected"),
    [
        ("{{<   Video }}", "{{< video }}"),
        ("{{< VIDEO src=x >}}", "{{< video src=x >}}"),
        ("{{<  Youtube id >}}", "{{< youtube id >}}"),
        ("{{<youtube id >}}", "{{<youtube id >}}"),
    ],
)
def test_shortcode_tokens(translated, expected):
    assert repair("Video content", translated) == expected


@pytest.mark.parametrize(
    "translated",
    ["Texte simple", "", "Un *texte* avec **gras** et [lien](http://x.com)"],
)
def test_clean_input_is_unchanged(translated):
    assert repair("Simple text", translated) == translated


def test_rules_are_reusable():
    rules = RepairRules()

    assert rules.extract_urls("[a](http://a.com) [b](/b)") == ["](http://a.com)", "](/b)"]
    assert rules.repair("x", "y") == "y"
