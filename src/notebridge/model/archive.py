# SPDX-License-Identifier: MIT

from typing import Any, NotRequired, Optional, TypedDict


class HandwrittenNotesBean(TypedDict):
    noteId: NotRequired[Optional[str]]
    noteName: NotRequired[Optional[str]]
    createTime: NotRequired[Any]
    lastModifiedTime: NotRequired[Any]
    pageCount: NotRequired[Optional[int]]


class HeaderInfo(TypedDict):
    packageName: str
    appVersion: NotRequired[Optional[str]]


class ModuleNotesBean(TypedDict):
    id: NotRequired[Optional[str]]
    noteId: NotRequired[Optional[str]]
    noteName: NotRequired[Optional[str]]
    fileName: NotRequired[Optional[str]]
    createTime: NotRequired[Any]
    creationTime: NotRequired[Any]
    lastModifiedTime: NotRequired[Any]
    lastTab: NotRequired[Optional[str]]
    pageCount: NotRequired[Optional[int]]


class NoteListEntry(TypedDict):
    id: str
    pageOrder: NotRequired[Optional[int]]


class BookBean(TypedDict):
    bookId: NotRequired[Optional[str]]
    bookName: NotRequired[Optional[str]]
    bookPath: NotRequired[Optional[str]]


class PageTextAnnotation(TypedDict):
    bookName: NotRequired[Optional[str]]
    chapterName: NotRequired[Optional[str]]
    rootChapterName: NotRequired[Optional[str]]
    chapterLinkUri: NotRequired[Optional[str]]
    rawText: NotRequired[Optional[str]]
    pageIndex: NotRequired[Optional[int]]
    pageCount: NotRequired[Optional[int]]
    # Epoch seconds
    createTime: NotRequired[Any]


class ReadNoteBean(TypedDict):
    id: NotRequired[Optional[int]]
    bookId: NotRequired[Optional[str]]
    bookName: NotRequired[Optional[str]]
    pageIndex: NotRequired[Optional[int]]
    rootChapterName: NotRequired[Optional[str]]
    title: NotRequired[Optional[str]]
    sumary: NotRequired[Optional[str]]
    alias: NotRequired[Optional[str]]
    noteImagePath: NotRequired[Optional[str]]
    pageImage: NotRequired[Optional[str]]
    upDataTime: NotRequired[Any]
