from __future__ import annotations

import pytest

from core.config.models import MapperConfig
from core.mapping.service import MapperService
from core.orchestrator.pipeline import initialize_mapper
from core.paths.structural_path import PathStep, path_key
from core.render.decorators import identity, wrap_sections
from core.render.models import DecorationOptions
from core.render.sandbox import SandboxDocument
from core.utils.html_dom import (
    copy_element,
    element_children,
    parse_document,
    query,
    query_all,
    serialize_document,
    wrap_element,
)

SOURCE = (
    "<html><body><main>"
    "<h1>Title</h1>"
    "<p>First <em>para</em></p>"
    '<img src="/hero.png" alt="Hero">'
    "<ul><li>One</li><li>Two</li></ul>"
    "</main></body></html>"
)


def _config(*decorators, **overrides) -> MapperConfig:
    return MapperConfig(
        decoration_options=DecorationOptions(decorators=list(decorators)),
        log_performance=False,
        **overrides,
    )


@pytest.mark.anyio
async def test_identity_render_maps_every_leaf_to_the_same_path() -> None:
    service = await initialize_mapper(SOURCE, _config(identity))

    assert len(service.source_paths) == 5
    assert len(service.page_paths) == len(service.source_paths)
    for token, source_path in service.source_paths.items():
        assert service.page_paths[token] == source_path


@pytest.mark.anyio
async def test_leaf_only_example_yields_three_pairs() -> None:
    config = _config(identity, target_selectors=["h1", "p"])

    service = await initialize_mapper(
        "<main><h1>Title</h1><p>A</p><p>B</p></main>", config
    )

    assert len(service.token_table) == 3
    pairs = service.get_all_mapped_elements()
    assert len(pairs) == 3
    assert [path_key(pair.source.path) for pair in pairs] == ["H1:0", "P:1", "P:2"]
    assert [pair.source.element.text for pair in pairs] == ["Title", "A", "B"]


@pytest.mark.anyio
async def test_find_source_element_returns_live_source_element() -> None:
    service = await initialize_mapper(SOURCE, _config(wrap_sections))
    page_root = query(service.page_document, "main")
    page_heading = query(page_root, "div.section h1")

    source_heading = service.find_source_element(page_heading)

    assert source_heading is query(service.get_source_doc(), "main h1")
    assert source_heading.text == "Title"


@pytest.mark.anyio
async def test_find_source_element_misses_decorator_wrappers() -> None:
    service = await initialize_mapper(SOURCE, _config(wrap_sections))
    page_root = query(service.page_document, "main")

    for wrapper in element_children(page_root):
        assert wrapper.get("class") == "section"
        assert service.find_source_element(wrapper) is None


@pytest.mark.anyio
async def test_find_source_element_resolves_list_items_and_images() -> None:
    service = await initialize_mapper(SOURCE, _config(wrap_sections))
    page_items = query_all(service.page_document, "main li")
    page_image = query(service.page_document, "main img")

    sources = [service.find_source_element(item) for item in page_items]

    assert [source.text for source in sources] == ["One", "Two"]
    assert service.find_source_element(page_image).get("src") == "/hero.png"


@pytest.mark.anyio
async def test_deepest_duplicate_wins_and_echo_misses() -> None:
    def echo_and_nest(root, document: SandboxDocument) -> None:
        paragraph = query(root, "p")
        wrap_element(paragraph, document.create_element("div", class_="section"))
        wrap_element(paragraph, document.create_element("div", class_="inner"))
        root.insert(0, copy_element(paragraph))

    service = await initialize_mapper(
        "<main><p>Only</p></main>", _config(echo_and_nest, target_selectors=["p"])
    )
    page_root = query(service.page_document, "main")
    echo = element_children(page_root)[0]
    genuine = query(page_root, "div.inner p")

    [page_path] = service.page_paths.values()
    assert path_key(page_path) == "DIV:1/DIV:0/P:0"
    assert service.find_source_element(echo) is None
    assert service.find_source_element(genuine).text == "Only"


@pytest.mark.anyio
async def test_find_page_path_answers_the_reverse_query() -> None:
    service = await initialize_mapper(SOURCE, _config(wrap_sections))
    source_root = query(service.get_source_doc(), "main")

    assert service.find_page_path(query(source_root, "h1")) == (
        PathStep(tag="DIV", index=0),
        PathStep(tag="H1", index=0),
    )
    assert service.find_page_path(source_root) is None
    assert service.find_page_path(query(parse_document(SOURCE), "h1")) is None


@pytest.mark.anyio
async def test_lookups_fail_closed_after_source_drift() -> None:
    service = await initialize_mapper(
        "<main><h1>T</h1><p>A</p></main>", _config(identity, target_selectors=["h1", "p"])
    )
    source_root = query(service.get_source_doc(), "main")
    source_root.remove(query(source_root, "h1"))

    page_root = query(service.page_document, "main")
    assert service.find_source_element(query(page_root, "h1")) is None
    assert service.find_source_element(query(page_root, "p")) is None
    assert service.get_all_mapped_elements() == []


@pytest.mark.anyio
async def test_get_all_mapped_elements_uses_supplied_live_document() -> None:
    service = await initialize_mapper(SOURCE, _config(identity))
    live = parse_document(serialize_document(service.page_document))

    pairs = service.get_all_mapped_elements(live)

    assert len(pairs) == 5
    live_root = query(live, "main")
    for pair in pairs:
        assert pair.page.element.getroottree().getroot() is live_root.getroottree().getroot()


def test_get_all_mapped_elements_without_page_document_is_empty() -> None:
    source_doc = parse_document("<main><p>x</p></main>")
    path = (PathStep(tag="P", index=0),)
    service = MapperService(source_doc, {"HASH_P_aaaa1111_HTML": path}, {}, MapperConfig())

    assert service.get_all_mapped_elements() == []

    service.bind_page_document(parse_document("<main><p>HASH_P_aaaa1111_HTML</p></main>"))
    assert service.get_all_mapped_elements() == []


def test_registries_are_read_only() -> None:
    source_doc = parse_document("<main><p>x</p></main>")
    path = (PathStep(tag="P", index=0),)
    registry = {"HASH_P_aaaa1111_HTML": path}
    service = MapperService(source_doc, registry, registry, MapperConfig())

    registry["HASH_P_bbbb2222_HTML"] = path

    assert len(service.source_paths) == 1
    with pytest.raises(TypeError):
        service.source_paths["HASH_P_bbbb2222_HTML"] = path  # type: ignore[index]
    with pytest.raises(TypeError):
        service.page_paths["HASH_P_bbbb2222_HTML"] = path  # type: ignore[index]


@pytest.mark.anyio
async def test_build_report_lists_every_token() -> None:
    def drop_images(root, document) -> None:
        for image in query_all(root, "img"):
            image.getparent().remove(image)

    service = await initialize_mapper(SOURCE, _config(drop_images))

    report = service.build_report()

    assert report.summary.token_count == 5
    assert report.summary.mapped_count == 4
    assert report.summary.unmapped_count == 1
    unmapped = [entry for entry in report.entries if entry.page_path is None]
    assert [(entry.kind, entry.tag) for entry in unmapped] == [("SRC", "IMG")]
    assert report.timings is not None
    assert report.root_selector == "main"
