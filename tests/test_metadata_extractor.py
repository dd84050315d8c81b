"""Tests for metadata, breadcrumb and attachment extraction."""

import unittest
import yaml
from bs4 import BeautifulSoup
from converters.metadata_extractor import MetadataExtractor, normalize_breadcrumb_href
from models import Breadcrumb, ConversionOptions, DocumentMetadata


PAGE = '''
<html>
<head><title>Engineering : Setup Guide</title></head>
<body>
<div id="main-header">
    <div id="breadcrumb-section">
        <ol id="breadcrumbs">
            <li class="first"><span><a href="index.html">Engineering</a></span></li>
            <li><span><a href="/Guides_12.html?src=breadcrumbs">Guides</a></span></li>
            <li>Setup Guide</li>
        </ol>
    </div>
    <h1 id="title-heading" class="pagetitle"><span id="title-text">Engineering : Setup Guide</span></h1>
</div>
<div id="content" class="view">
    <div class="page-metadata">
        Created by <span class="author">Alice Smith</span>, last updated by <span class="editor">Bob Jones</span> on Jan 05, 2024
    </div>
    <div id="main-content" class="wiki-content group">
        <p>See <a href="attachments/100/200.pdf" data-linked-resource-type="attachment"
              data-linked-resource-id="200" data-linked-resource-container-id="100">spec.pdf</a></p>
        <p><img src="attachments/100/201.png" alt="diagram.png" data-linked-resource-type="attachment"
                data-linked-resource-id="201" data-linked-resource-container-id="100"></p>
    </div>
    <div id="labels-section"><ul class="label-list"><li><a>howto</a></li><li><a>setup</a></li></ul></div>
    <div class="pageSection group">
        <div class="greybox">
            <a href="attachments/100/200.pdf">spec.pdf</a>
            <a href="attachments/100/202.txt">notes.txt</a>
        </div>
    </div>
    <div class="comment"><span class="author">Carol</span><div class="comment-content"><p>Looks good.</p></div></div>
</div>
</body>
</html>
'''


def soup_for(html):
    return BeautifulSoup(html, 'lxml')


class TestMetadataExtraction(unittest.TestCase):
    def setUp(self):
        self.options = ConversionOptions(include_breadcrumbs=True, include_last_modified=True)
        self.extractor = MetadataExtractor(self.options)
        self.soup = soup_for(PAGE)

    def test_title_drops_space_prefix(self):
        self.assertEqual(self.extractor.extract_title(self.soup), 'Setup Guide')

    def test_title_entities_decoded_once(self):
        html = '<html><head><title>Docs : Use &amp;lt;br&amp;gt; &amp; more</title></head><body></body></html>'
        self.assertEqual(self.extractor.extract_title(soup_for(html)), 'Use &lt;br&gt; & more')

    def test_untitled_page(self):
        self.assertEqual(self.extractor.extract_title(soup_for('<p>no title</p>')), 'Untitled Page')

    def test_authorship(self):
        metadata = self.extractor.extract_metadata(self.soup)
        self.assertEqual(metadata.created_by, 'Alice Smith')
        self.assertEqual(metadata.created_date, 'Jan 05, 2024')
        self.assertEqual(metadata.last_modified, 'Bob Jones')
        self.assertTrue(metadata.page_info.startswith('Created by Alice Smith'))

    def test_last_modified_skipped_when_disabled(self):
        metadata = MetadataExtractor(ConversionOptions()).extract_metadata(self.soup)
        self.assertEqual(metadata.last_modified, '')
        self.assertEqual(metadata.breadcrumbs, [])

    def test_labels_and_comments(self):
        metadata = self.extractor.extract_metadata(self.soup)
        self.assertEqual(metadata.labels, ['howto', 'setup'])
        self.assertEqual(len(metadata.comments), 1)
        self.assertEqual(metadata.comments[0].author, 'Carol')
        self.assertEqual(metadata.comments[0].text, 'Looks good.')


class TestBreadcrumbs(unittest.TestCase):
    def setUp(self):
        self.extractor = MetadataExtractor(ConversionOptions(include_breadcrumbs=True))

    def test_breadcrumb_list(self):
        crumbs = self.extractor.extract_breadcrumbs(soup_for(PAGE))
        self.assertEqual(crumbs, [
            Breadcrumb('Engineering', './index.html'),
            Breadcrumb('Guides', './Guides_12.html?src=breadcrumbs'),
            Breadcrumb('Setup Guide', None),
        ])

    def test_title_fallback(self):
        """Without a breadcrumb list, title segments become unlinked crumbs."""
        html = '<html><head><title>Space : Parent : Child</title></head><body><p>x</p></body></html>'
        crumbs = self.extractor.extract_breadcrumbs(soup_for(html))
        self.assertEqual([crumb.text for crumb in crumbs], ['Space', 'Parent', 'Child'])
        self.assertTrue(all(crumb.href is None for crumb in crumbs))

    def test_single_segment_title_has_no_breadcrumbs(self):
        html = '<html><head><title>Home</title></head><body><p>x</p></body></html>'
        self.assertEqual(self.extractor.extract_breadcrumbs(soup_for(html)), [])

    def test_href_normalization(self):
        self.assertEqual(normalize_breadcrumb_href('/display/ENG'), './display/ENG')
        self.assertEqual(normalize_breadcrumb_href('Page_1.html'), './Page_1.html')
        self.assertEqual(normalize_breadcrumb_href('../Page_1.html'), '../Page_1.html')
        self.assertEqual(normalize_breadcrumb_href('#top'), '#top')
        self.assertEqual(normalize_breadcrumb_href('https://wiki.example.com/x'), 'https://wiki.example.com/x')

    def test_trail(self):
        crumbs = [Breadcrumb('Engineering', './index.html'), Breadcrumb('Guides', './Guides_12.html?src=x')]
        trail = self.extractor.generate_breadcrumb_trail(crumbs)
        self.assertEqual(trail, '> [Engineering](./index.html) > [Guides](./Guides_12.html)')

    def test_trail_disabled(self):
        extractor = MetadataExtractor(ConversionOptions())
        self.assertEqual(extractor.generate_breadcrumb_trail([Breadcrumb('A', './a.html')]), '')


class TestAttachments(unittest.TestCase):
    def setUp(self):
        self.extractor = MetadataExtractor(ConversionOptions())

    def test_all_sources_collected_once(self):
        attachments = self.extractor.extract_attachments(soup_for(PAGE))
        self.assertEqual(list(attachments), ['200', '201', '202'])
        self.assertEqual(attachments['200'].filename, 'spec.pdf')
        self.assertEqual(attachments['201'].filename, 'diagram.png')
        self.assertEqual(attachments['202'].container_id, '100')
        self.assertEqual(attachments['202'].href, 'attachments/100/202.txt')

    def test_no_attachments(self):
        self.assertEqual(self.extractor.extract_attachments(soup_for('<p>nothing</p>')), {})


class TestFrontmatter(unittest.TestCase):
    def setUp(self):
        self.metadata = DocumentMetadata(
            title='Setup: "Guide"',
            last_modified='Bob',
            created_by='Alice',
            created_date='Jan 05, 2024',
            breadcrumbs=[Breadcrumb('Engineering', './index.html?x=1'), Breadcrumb('Setup')],
        )

    def test_empty_when_disabled(self):
        """No frontmatter when metadata, breadcrumbs and last-modified are all off."""
        extractor = MetadataExtractor(ConversionOptions(include_labels=True, include_attachments=True))
        self.assertEqual(extractor.generate_frontmatter(self.metadata), '')

    def test_full_frontmatter(self):
        options = ConversionOptions(include_metadata=True, include_breadcrumbs=True, include_last_modified=True)
        frontmatter = MetadataExtractor(options).generate_frontmatter(self.metadata)

        self.assertTrue(frontmatter.startswith('---\n'))
        self.assertTrue(frontmatter.endswith('\n---\n'))
        self.assertIn('title: "Setup: \\"Guide\\""', frontmatter)

        data = yaml.safe_load(frontmatter.strip().strip('-'))
        self.assertEqual(data['title'], 'Setup: "Guide"')
        self.assertEqual(data['created_by'], 'Alice')
        self.assertEqual(data['created_date'], 'Jan 05, 2024')
        self.assertEqual(data['last_modified'], 'Bob')
        self.assertEqual(data['breadcrumbs'], [
            {'title': 'Engineering', 'url': './index.html'},
            {'title': 'Setup'},
        ])

    def test_only_title_with_last_modified(self):
        options = ConversionOptions(include_last_modified=True)
        frontmatter = MetadataExtractor(options).generate_frontmatter(self.metadata)
        self.assertEqual(frontmatter, '---\ntitle: "Setup: \\"Guide\\""\nlast_modified: "Bob"\n---\n')


if __name__ == '__main__':
    unittest.main()
