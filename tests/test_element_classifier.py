"""Tests for table, panel and macro classification."""

import unittest
from bs4 import BeautifulSoup
from converters.element_classifier import (
    CategoryGroup,
    ElementCategory,
    ElementClassifier,
    TableKind,
    table_rows,
)


def first(html, name):
    return BeautifulSoup(html, 'lxml').find(name)


class TestTableClassification(unittest.TestCase):
    def setUp(self):
        self.classifier = ElementClassifier()

    def test_history_wins_over_layout(self):
        """A table carrying both history and layout markers is a history table."""
        table = first('<table class="tableview layout"><tr><td>x</td></tr></table>', 'table')
        self.assertEqual(self.classifier.classify_table(table), TableKind.HISTORY)

    def test_history_headers(self):
        """Version/Published/Changed By headers identify a history table."""
        html = '''
        <table>
            <tr><th>Version</th><th>Published</th><th>Changed By</th><th>Comment</th></tr>
            <tr><td>v. 1</td><td>Jan 01, 2024</td><td>Alice</td><td></td></tr>
        </table>
        '''
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.HISTORY)

    def test_history_container_id(self):
        table = first('<table id="page-history-container"><tr><td>a</td><td>b</td></tr></table>', 'table')
        self.assertTrue(self.classifier.is_history_table(table))

    def test_version_header_alone_is_not_history(self):
        html = '<table><tr><th>Version</th><th>Notes</th></tr><tr><td>1</td><td>x</td></tr></table>'
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.STANDARD)

    def test_layout_class(self):
        table = first('<table class="layout"><tr><td>a</td><td>b</td></tr></table>', 'table')
        self.assertEqual(self.classifier.classify_table(table), TableKind.LAYOUT)

    def test_single_cell_with_block_content_is_layout(self):
        table = first('<table><tr><td><div><p>Wrapped</p></div></td></tr></table>', 'table')
        self.assertEqual(self.classifier.classify_table(table), TableKind.LAYOUT)

    def test_borderless_table_in_layout_container_is_layout(self):
        html = '''
        <div class="columnLayout">
            <table border="0"><tr><td>a</td><td>b</td></tr><tr><td>c</td><td>d</td></tr></table>
        </div>
        '''
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.LAYOUT)

    def test_bordered_table_in_layout_container_is_standard(self):
        html = '''
        <div class="columnLayout">
            <table border="1"><tr><td>a</td><td>b</td></tr><tr><td>c</td><td>d</td></tr></table>
        </div>
        '''
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.STANDARD)

    def test_list_in_cell_is_complex(self):
        html = '''
        <table>
            <tr><th>Step</th><th>Details</th></tr>
            <tr><td>Install</td><td><ul><li>one</li><li>two</li></ul></td></tr>
        </table>
        '''
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.COMPLEX)

    def test_long_cell_text_is_complex(self):
        long_text = 'word ' * 30
        html = f'<table><tr><td>a</td><td>{long_text}</td></tr><tr><td>b</td><td>c</td></tr></table>'
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.COMPLEX)

    def test_many_line_breaks_make_cell_complex(self):
        cell = first('<table><tr><td>a<br>b<br>c<br>d</td></tr></table>', 'td')
        self.assertTrue(self.classifier.is_complex_cell(cell))

    def test_plain_data_table_is_standard(self):
        html = '<table><tr><th>A</th><th>B</th></tr><tr><td>1</td><td>2</td></tr></table>'
        self.assertEqual(self.classifier.classify_table(first(html, 'table')), TableKind.STANDARD)

    def test_classify_wraps_table_kind(self):
        html = '<table><tr><th>A</th><th>B</th></tr><tr><td>1</td><td>2</td></tr></table>'
        category = self.classifier.classify(first(html, 'table'))
        self.assertEqual(category, ElementCategory.table(TableKind.STANDARD))
        self.assertTrue(category.is_specialized)

    def test_table_rows_excludes_nested_rows(self):
        html = '''
        <table id="outer">
            <tr><td><table><tr><td>inner</td></tr></table></td></tr>
            <tr><td>second</td></tr>
        </table>
        '''
        outer = first(html, 'table')
        self.assertEqual(len(table_rows(outer)), 2)


class TestPanelAndMacroClassification(unittest.TestCase):
    def setUp(self):
        self.classifier = ElementClassifier()

    def test_information_macro_defaults_to_info(self):
        html = '<div class="confluence-information-macro confluence-information-macro-information">x</div>'
        self.assertEqual(self.classifier.classify(first(html, 'div')), ElementCategory.panel('info'))

    def test_warning_class_suffix(self):
        html = '<div class="confluence-information-macro confluence-information-macro-warning">x</div>'
        self.assertEqual(self.classifier.classify_panel_or_macro(first(html, 'div')), 'warning')

    def test_note_and_tip_suffixes(self):
        note = first('<div class="confluence-information-macro confluence-information-macro-note">x</div>', 'div')
        tip = first('<div class="confluence-information-macro confluence-information-macro-tip">x</div>', 'div')
        self.assertEqual(self.classifier.classify_panel_or_macro(note), 'note')
        self.assertEqual(self.classifier.classify_panel_or_macro(tip), 'tip')

    def test_macro_name_takes_precedence(self):
        html = '<div class="panel" data-macro-name="information">x</div>'
        self.assertEqual(self.classifier.classify(first(html, 'div')), ElementCategory.panel('info'))

    def test_noformat_is_code_macro(self):
        html = '<div class="preformatted panel" data-macro-name="noformat"><pre>x</pre></div>'
        category = self.classifier.classify(first(html, 'div'))
        self.assertEqual(category.group, CategoryGroup.MACRO)
        self.assertEqual(category.kind, 'code')

    def test_code_panel_class(self):
        html = '<div class="code panel pdl"><div class="codeContent"><pre>x</pre></div></div>'
        self.assertEqual(self.classifier.classify(first(html, 'div')), ElementCategory.macro('code'))

    def test_macro_classes(self):
        cases = {
            '<div class="expand-container">x</div>': 'expand',
            '<div class="toc-macro">x</div>': 'toc',
            '<span class="status-macro aui-lozenge">x</span>': 'status',
            '<span class="jira-issues">x</span>': 'jira',
        }
        for html, kind in cases.items():
            element = BeautifulSoup(html, 'lxml').find(class_=True)
            self.assertEqual(self.classifier.classify(element), ElementCategory.macro(kind), html)

    def test_unknown_macro_without_panel_class_is_plain(self):
        html = '<div data-macro-name="gadget">x</div>'
        self.assertEqual(self.classifier.classify(first(html, 'div')), ElementCategory.PLAIN)

    def test_unknown_macro_with_panel_class_is_panel(self):
        html = '<div class="panel" data-macro-name="custom">x</div>'
        self.assertEqual(self.classifier.classify(first(html, 'div')), ElementCategory.panel('custom'))

    def test_plain_paragraph(self):
        category = self.classifier.classify(first('<p>Hello</p>', 'p'))
        self.assertEqual(category, ElementCategory.PLAIN)
        self.assertFalse(category.is_specialized)

    def test_text_node_is_plain(self):
        text = first('<p>Hello</p>', 'p').contents[0]
        self.assertEqual(self.classifier.classify(text), ElementCategory.PLAIN)


class TestIgnoredElements(unittest.TestCase):
    def setUp(self):
        self.classifier = ElementClassifier()

    def test_ignored_markup(self):
        cases = [
            ('<script>var x = 1;</script>', 'script'),
            ('<div style="display: none">hidden</div>', 'div'),
            ('<div class="breadcrumb-section">crumbs</div>', 'div'),
            ('<div id="footer">footer</div>', 'div'),
            ('<span aria-hidden="true">icon</span>', 'span'),
        ]
        for html, name in cases:
            element = first(html, name)
            self.assertEqual(self.classifier.classify(element), ElementCategory.IGNORED, html)

    def test_visible_content_is_not_ignored(self):
        self.assertFalse(self.classifier.should_ignore(first('<div class="wiki-content">x</div>', 'div')))


class TestMainContent(unittest.TestCase):
    def setUp(self):
        self.classifier = ElementClassifier()

    def test_main_content_preferred(self):
        html = '''
        <div id="content"><div class="wiki-content" id="main-content"><p>Body</p></div></div>
        '''
        soup = BeautifulSoup(html, 'lxml')
        self.assertEqual(self.classifier.find_main_content(soup).get('id'), 'main-content')

    def test_wiki_content_fallback(self):
        soup = BeautifulSoup('<div class="wiki-content"><p>Body</p></div>', 'lxml')
        self.assertIn('wiki-content', self.classifier.find_main_content(soup)['class'])

    def test_body_fallback(self):
        soup = BeautifulSoup('<p>Just a paragraph</p>', 'lxml')
        self.assertEqual(self.classifier.find_main_content(soup).name, 'body')

    def test_no_container(self):
        soup = BeautifulSoup('<span>loose</span>', 'html.parser')
        self.assertIsNone(self.classifier.find_main_content(soup))


if __name__ == '__main__':
    unittest.main()
