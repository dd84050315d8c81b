"""Tests for element dispatch and the inline conversion rules."""

import unittest
from unittest import mock

from bs4 import BeautifulSoup
from converters.content_renderer import ContentRenderer, join_blocks
from models import ConversionOptions, ImageStyle, LinkStyle


def render(html, **changes):
    renderer = ContentRenderer(ConversionOptions(**changes))
    body = BeautifulSoup(html, 'lxml').body
    return renderer.render_blocks(body).strip()


class TestEmoticons(unittest.TestCase):
    EMOTICON = (
        '<p>Nice work <img class="emoticon emoticon-thumbs-up" data-emoticon-name="thumbs-up" '
        'src="images/icons/emoticons/thumbs_up.svg" alt="(thumbs up)"></p>'
    )

    def test_emoticon_becomes_emoji(self):
        """Emoticon images are replaced by the matching emoji."""
        self.assertEqual(render(self.EMOTICON), 'Nice work 👍')

    def test_emoticon_shortcode_when_emojis_disabled(self):
        self.assertEqual(render(self.EMOTICON, include_emojis=False), 'Nice work :thumbs-up:')

    def test_emoticon_name_from_src(self):
        html = '<p><img class="emoticon" src="images/icons/emoticons/smile.svg" alt=""></p>'
        self.assertEqual(render(html), '😊')

    def test_unknown_emoticon_keeps_alt(self):
        html = '<p><img class="emoticon" data-emoticon-name="blue-star" src="x.png" alt="(blue star)"></p>'
        self.assertEqual(render(html), '(blue star)')

    def test_emoticon_not_removed_with_images_disabled(self):
        html = '<p><img class="emoticon" data-emoticon-name="smile" src="smile.svg" alt="(smile)"></p>'
        self.assertEqual(render(html, include_images=False), '😊')


class TestInlineRules(unittest.TestCase):
    def test_formatting(self):
        self.assertEqual(render('<p><strong>bold</strong> and <em>em</em></p>'), '**bold** and *em*')

    def test_formatting_disabled(self):
        markdown = render('<p><strong>bold</strong> and <code>code</code></p>', include_inline_formatting=False)
        self.assertEqual(markdown, 'bold and code')

    def test_special_characters_folded(self):
        markdown = render('<p>“quoted” – it’s…</p>', include_special_characters=False)
        self.assertEqual(markdown, '"quoted" - it\'s...')

    def test_special_characters_kept_by_default(self):
        self.assertEqual(render('<p>it’s</p>'), 'it’s')

    def test_links(self):
        self.assertEqual(render('<p><a href="Page_1.html">Page</a></p>'), '[Page](Page_1.html)')

    def test_links_disabled(self):
        self.assertEqual(render('<p><a href="Page_1.html">Page</a></p>', include_links=False), 'Page')

    def test_html_links(self):
        markdown = render('<p><a href="Page_1.html">Page</a></p>', link_style=LinkStyle.HTML)
        self.assertEqual(markdown, '<a href="Page_1.html">Page</a>')

    def test_images(self):
        markdown = render('<p><img src="attachments/1/2.png" alt="Diagram" title="Flow"></p>')
        self.assertEqual(markdown, '![Diagram](attachments/1/2.png "Flow")')

    def test_images_disabled(self):
        self.assertEqual(render('<p>a<img src="x.png" alt="x"></p>', include_images=False), 'a')

    def test_html_images(self):
        markdown = render('<p><img src="x.png" alt="X"></p>', image_style=ImageStyle.HTML)
        self.assertEqual(markdown, '<img src="x.png" alt="X">')

    def test_headings_disabled(self):
        self.assertEqual(render('<h2>Overview</h2><p>Text</p>', include_headings=False), 'Overview\n\nText')

    def test_lists_disabled(self):
        markdown = render('<ul><li>one</li><li>two</li></ul>', include_lists=False)
        self.assertEqual(markdown, 'one\ntwo')

    def test_horizontal_rules_disabled(self):
        self.assertEqual(render('<p>a</p><hr><p>b</p>', include_horizontal_rules=False), 'a\n\nb')

    def test_preformatted_block(self):
        self.assertEqual(render('<pre>x = 1</pre>'), '```\nx = 1\n```')


class TestDispatch(unittest.TestCase):
    def test_panel_inside_layout_rendered_once(self):
        """A panel nested in a layout cell is emitted exactly once."""
        html = '''
        <table class="layout"><tr><td>
            <div class="confluence-information-macro confluence-information-macro-note">
                <div class="confluence-information-macro-body"><p>Nested note</p></div>
            </div>
        </td></tr></table>
        '''
        markdown = render(html)
        self.assertEqual(markdown.count('Nested note'), 1)
        self.assertIn('> **NOTE**', markdown)

    def test_hidden_content_skipped(self):
        markdown = render('<p>Shown</p><div style="display:none"><p>Hidden</p></div><script>x()</script>')
        self.assertEqual(markdown, 'Shown')

    def test_macros_disabled_render_as_content(self):
        html = '<div class="confluence-information-macro"><p>Body text</p></div>'
        markdown = render(html, include_macros=False)
        self.assertEqual(markdown, 'Body text')

    def test_line_break_inside_table_cell(self):
        html = '<table><tr><th>A</th></tr><tr><td>one<br>two</td></tr></table>'
        self.assertIn('| one two |', render(html))

    def test_failing_sub_renderer_falls_back_to_text(self):
        renderer = ContentRenderer(ConversionOptions())
        soup = BeautifulSoup('<table><tr><td>a</td><td>b</td></tr></table><p>after</p>', 'lxml')
        table = soup.find('table')

        with mock.patch.object(renderer.table_converter, 'convert', side_effect=RuntimeError('boom')):
            with self.assertLogs('confluence_export_md', level='WARNING') as logs:
                markdown = renderer.render_blocks(soup.body).strip()

        self.assertEqual(markdown, 'a b\n\nafter')
        self.assertIn(table, renderer.processed)
        self.assertTrue(any('falling back to plain text' in line for line in logs.output))


class TestJoinBlocks(unittest.TestCase):
    def test_block_boundaries_collapse(self):
        self.assertEqual(join_blocks(['\n\nA\n\n', '\n\nB\n\n']), '\n\nA\n\nB\n\n')

    def test_inline_parts_untouched(self):
        self.assertEqual(join_blocks(['a ', '**b**', '', ' c']), 'a **b** c')


if __name__ == '__main__':
    unittest.main()
