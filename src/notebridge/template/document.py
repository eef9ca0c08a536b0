# SPDX-License-Identifier: MIT


def get_handwritten_page_template() -> str:
    return """---
note_id: {{note_id_yaml}}
created: {{created}}
modified: {{modified}}
total_pages: {{total_pages}}
page: {{page_number}}
tags:
  - notebridge/handwritten
  - {{note_slug}}
  - {{date_tag}}
---

# {{note_name}}, page {{page_number}}

{{page_image}}

> [!note] Notes
> *Add your notes here*
> ^page-{{page_number}}-notes
"""


def get_handwritten_highlight_template() -> str:
    return """---
note_id: {{note_id_yaml}}
created: {{created}}
modified: {{modified}}
page: {{page_number}}
stroke_count: {{stroke_count}}
point_count: {{point_count}}
tags:
  - notebridge/highlight
  - {{note_slug}}
---

# {{note_name}}, page {{page_number}} handwriting

- Strokes: {{stroke_count}}
- Points: {{point_count}}

{{page_image}}
"""


def get_handwritten_annotation_template() -> str:
    return """---
note_id: {{note_id_yaml}}
created: {{created}}
modified: {{modified}}
page: {{page_number}}
tags:
  - notebridge/annotation
  - {{note_slug}}
---

# {{note_name}}, page {{page_number}} text

```json
{{text_content}}
```
"""


def get_handwritten_index_template() -> str:
    return """---
note_id: {{note_id_yaml}}
external_file_id: {{external_file_id_yaml}}
created: {{created}}
modified: {{modified}}
total_pages: {{total_pages}}
tags:
  - notebridge/handwritten
  - {{date_tag}}
---

# {{note_name}}

**Created:** {{created}}
**Total Pages:** {{total_pages}}

{{thumbnail}}

## Files Created

{{file_links}}

*Add your notes here*
"""


def get_ebook_highlight_template() -> str:
    return """---
book: {{book_name_yaml}}
chapter: {{chapter_name_yaml}}
page: {{page_index}}
created: {{created}}
tags:
  - notebridge/highlight
  - {{book_slug}}
  - {{date_tag}}
---

# {{book_name}}

> [!quote] {{chapter_name}}
{{quoted_text}}

{{chapter_link}}

> [!note] Notes
> *Add your notes here*
> ^highlight-{{highlight_number}}-notes
"""


def get_ebook_annotation_template() -> str:
    return """---
book: {{book_name_yaml}}
chapter: {{chapter_name_yaml}}
page: {{page_index}}
created: {{created}}
modified: {{modified}}
tags:
  - notebridge/annotation
  - {{book_slug}}
  - {{date_tag}}
---

# {{title}}

{{annotation_image}}

{{summary}}

> [!note] Notes
> *Add your notes here*
> ^annotation-{{annotation_id}}-notes
"""


def get_ebook_book_template() -> str:
    return """---
note_id: {{note_id_yaml}}
external_file_id: {{external_file_id_yaml}}
book: {{book_name_yaml}}
created: {{created}}
modified: {{modified}}
total_pages: {{total_pages}}
tags:
  - notebridge/book
  - {{book_slug}}
---

# {{book_name}}

{{source_link}}

## Highlights

{{highlight_links}}

## Annotations

{{annotation_links}}
"""


def get_memo_template() -> str:
    return """---
note_id: {{note_id_yaml}}
external_file_id: {{external_file_id_yaml}}
created: {{created}}
modified: {{modified}}
tags:
  - notebridge/memo
  - {{date_tag}}
---

# {{note_name}}

{{memo_image}}

*Add your notes here*
"""


def get_daily_template() -> str:
    return """---
note_id: {{note_id_yaml}}
date: {{date_string}}
created: {{created}}
modified: {{modified}}
total_pages: {{total_pages}}
last_tab: {{last_tab_yaml}}
tags:
  - notebridge/daily
  - {{date_string}}
---

# {{date:dddd, MMMM D, YYYY}}

> [!note] Journal
> *Add your notes here*
> ^journal

## Pages

{{page_images}}

## Related Notes

{{related_notes}}
"""
