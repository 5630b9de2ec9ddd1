"""Tests for ZIP bundle and EPUB import."""
from __future__ import annotations

import base64
import io
import zipfile

import pytest

from nuagebook.services import archive_import, object_storage
from nuagebook.utils.errors import ValidationError

PAGE_XHTML = """<html><head><meta name="viewport" content="width=400, height=300"/></head>
<body>
<div id="_idContainer001" class="text"><p>Il était une fois</p></div>
<div id="_idContainer002"><img class="_idGenObjectAttribute-1" src="../Images/page1_hero-father_skin-light.png" alt="hero"/></div>
<div id="_idContainer003"><img src="../Images/background.png"/></div>
</body></html>"""

EPUB_CSS = (
    "#_idContainer001 { width: 200px; height: 50px; transform: translate(10px, 20px); }\n"
    "p { font-family: 'Minion Pro'; }\n"
)


def _zip(files) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def _epub() -> bytes:
    return _zip({
        "mimetype": "application/epub+zip",
        "OEBPS/Images/page1_hero-father_skin-light.png": b"hero-png",
        "OEBPS/Images/background.png": b"bg-png",
        "OEBPS/Text/page1.xhtml": PAGE_XHTML,
        "OEBPS/Text/toc.xhtml": "<html><body><nav>toc</nav></body></html>",
        "OEBPS/Styles/style.css": EPUB_CSS,
    })


@pytest.fixture(autouse=True)
def storage_dirs(tmp_path, monkeypatch):
    monkeypatch.setenv("NUAGEBOOK_STORAGE_ROOT", str(tmp_path / "objects"))
    monkeypatch.setenv("NUAGEBOOK_ASSETS_ROOT", str(tmp_path / "assets"))
    return tmp_path


def test_register_path_aliases_keeps_first_entry():
    path_map = {}
    archive_import.register_path_aliases(path_map, "OEBPS/image/1.png", "/a")
    archive_import.register_path_aliases(path_map, "other/1.png", "/b")

    assert path_map["OEBPS/image/1.png"] == "/a"
    assert path_map["image/1.png"] == "/a"
    assert path_map["1.png"] == "/a"
    assert path_map["other/1.png"] == "/b"


def test_extract_zip_stores_assets_and_rewrites_fonts():
    data = _zip({
        "OEBPS/image/page1_hero-father.png": b"png",
        "OEBPS/font/Story.ttf": b"ttf",
        "OEBPS/page1.xhtml": "<html><body>Bonjour</body></html>",
        "OEBPS/css/style.css": (
            '@font-face { font-family: "Story"; src: url("../font/Story.ttf"); }\n'
            '@font-face { font-family: "Ghost"; src: url("../font/Ghost.otf"); }\n'
        ),
        "__MACOSX/OEBPS/._page1.xhtml": "junk",
        "OEBPS/.DS_Store": "junk",
    })

    result = archive_import.extract_zip(data, session_id="s1")

    image_path = "/objects/public/uploads/s1/OEBPS_image_page1_hero-father.png"
    font_path = "/objects/public/uploads/s1/fonts/OEBPS_font_Story.ttf"
    assert result["sessionId"] == "s1"
    assert result["images"]["page1_hero-father.png"] == image_path
    assert result["images"]["image/page1_hero-father.png"] == image_path
    assert object_storage.read_object(image_path).data == b"png"
    assert object_storage.read_object(font_path).content_type == "font/ttf"
    assert [f["name"] for f in result["htmlFiles"]] == ["OEBPS/page1.xhtml"]
    assert font_path in result["cssContent"]
    assert result["fontWarnings"] == ['Police "Ghost" non trouvée dans l\'EPUB (fichier: ../font/Ghost.otf)']


def test_extract_zip_rejects_non_archives():
    with pytest.raises(ValidationError) as exc:
        archive_import.extract_zip(b"definitely not a zip")

    assert exc.value.code == "invalid_archive"


def test_page_helpers():
    assert archive_import.page_dimensions('<meta content="width=400, height=300">') == (400, 300)
    assert archive_import.page_dimensions("<html></html>") == (595, 842)
    assert archive_import.is_content_page("OEBPS/Text/page1.xhtml")
    assert not archive_import.is_content_page("OEBPS/Text/toc.xhtml")


def test_extract_epub_builds_content_skeleton(storage_dirs):
    result = archive_import.extract_epub(_epub(), "voyage")

    assert result["success"] is True
    assert result["pages"] == [{"width": 400, "height": 300, "pageIndex": 1}]
    hero_url = "/assets/books/voyage/images/page1_hero-father_skin-light.png"
    assert result["imageMap"]["Images/page1_hero-father_skin-light.png"] == hero_url
    assert (storage_dirs / "assets" / "books" / "voyage" / "images" / "background.png").read_bytes() == b"bg-png"

    texts = result["texts"]
    assert len(texts) == 1
    assert texts[0]["id"] == "text-1-_idContainer001"
    assert texts[0]["content"] == "Il était une fois"
    assert texts[0]["position"]["x"] == 10.0
    assert texts[0]["position"]["width"] == 200.0
    assert texts[0]["position"]["pageIndex"] == 1

    personalized, static = result["imageElements"]
    assert personalized["type"] == "personalized"
    assert personalized["url"] == hero_url
    assert personalized["combinationKey"] == "hero:father_skin:light"
    assert personalized["characteristics"] == {"hero": "father", "skin": "light"}
    assert personalized["label"] == "_idGenObjectAttribute-1"
    assert personalized["id"].startswith("img-voyage-1-")
    assert static["type"] == "static"
    assert static["combinationKey"] == "default"
    assert static["label"] == "_idContainer003"
    assert static["position"]["width"] == 400.0

    assert [tab["id"] for tab in result["wizardConfig"]["tabs"]] == ["hero", "skin"]
    assert result["detectedCharacteristics"] == {"hero": ["father"], "skin": ["light"]}
    assert [w["fontFamily"] for w in result["fontWarnings"]] == ["minion pro"]
    assert result["cssFontMapping"]["p"] == "Minion Pro"


def test_store_list_and_extract_stored_epub():
    encoded = base64.b64encode(_epub()).decode("ascii")

    stored = archive_import.store_epub(encoded, "My Book")

    assert stored == {"objectPath": "/objects/private/epubs/My_Book.epub", "filename": "My_Book.epub"}
    assert archive_import.list_epubs() == [stored]
    result = archive_import.extract_stored_epub(stored["objectPath"], "voyage")
    assert result["bookId"] == "voyage"


def test_store_epub_rejects_non_zip_payload():
    with pytest.raises(ValidationError) as exc:
        archive_import.store_epub(base64.b64encode(b"plain text").decode("ascii"), "x.epub")

    assert exc.value.code == "invalid_archive"
