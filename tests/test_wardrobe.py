import pytest

from app.client.state import MAX_ITEMS
from conftest import FakeProvider

PNG = "data:image/png;base64,iVBORw=="


async def _wardrobe(make_app, store, count):
    ids = [await store.add_wardrobe_item(PNG, f"item{i}.png") for i in range(count)]
    styling = make_app(store=store)
    await styling.start("/wardrobe")
    return styling, ids


@pytest.mark.asyncio
async def test_load_marks_selected_items(make_app, store):
    styling, ids = await _wardrobe(make_app, store, 3)
    await styling.wardrobe.toggle_selection(ids[1])
    view = styling.navigation.panels["wardrobe"].model
    assert view.select_all_visible
    assert [e.item.id for e in view.entries if e.selected] == [ids[1]]


@pytest.mark.asyncio
async def test_empty_wardrobe(make_app, store):
    styling, _ = await _wardrobe(make_app, store, 0)
    view = await styling.wardrobe.load()
    assert view.empty
    assert not view.select_all_visible


@pytest.mark.asyncio
async def test_selection_cap_warns(make_app, store):
    styling, ids = await _wardrobe(make_app, store, MAX_ITEMS + 1)
    for item_id in ids[:MAX_ITEMS]:
        assert await styling.wardrobe.toggle_selection(item_id)
    assert await styling.wardrobe.toggle_selection(ids[-1]) is False
    assert styling.notifier.current.title == "Selection limit reached"
    assert len(styling.session.selected_wardrobe_items) == MAX_ITEMS

    await styling.wardrobe.toggle_selection(ids[0])
    assert styling.notifier.current is None
    sel = await styling.wardrobe.selection_view()
    assert sel.counter_text == f"({MAX_ITEMS - 1}/{MAX_ITEMS})"


@pytest.mark.asyncio
async def test_select_all_past_cap_hides_styling(make_app, store):
    styling, ids = await _wardrobe(make_app, store, MAX_ITEMS + 2)
    await styling.wardrobe.select_all()
    sel = await styling.wardrobe.selection_view()
    assert sel.count == MAX_ITEMS + 2
    assert sel.counter_text == f"({MAX_ITEMS + 2} selected)"
    assert sel.styling_visible is False

    await styling.wardrobe.toggle_selection(ids[0])
    await styling.wardrobe.toggle_selection(ids[1])
    sel = await styling.wardrobe.selection_view()
    assert sel.styling_visible is True
    assert styling.session.used_select_all is False


@pytest.mark.asyncio
async def test_deleting_selected_item_drops_it_from_selection(make_app, store):
    styling, ids = await _wardrobe(make_app, store, 3)
    await styling.wardrobe.toggle_selection(ids[0])
    await styling.wardrobe.toggle_selection(ids[2])
    await styling.wardrobe.delete_item(ids[0])
    assert styling.session.selected_wardrobe_items == [ids[2]]
    assert ids[0] not in [e.item.id for e in styling.navigation.panels["wardrobe"].model.entries]


@pytest.mark.asyncio
async def test_dangling_selection_ids_are_skipped(make_app, store):
    styling, ids = await _wardrobe(make_app, store, 2)
    styling.session.selected_wardrobe_items = [ids[1], 999, ids[0]]
    sel = await styling.wardrobe.selection_view()
    assert [i.id for i in sel.items] == [ids[1], ids[0]]
    assert sel.count == 2
    assert sel.counter_text == f"(2/{MAX_ITEMS})"


@pytest.mark.asyncio
async def test_delete_selected_empties_selection(make_app, store):
    styling, ids = await _wardrobe(make_app, store, 4)
    await styling.wardrobe.toggle_selection(ids[1])
    await styling.wardrobe.toggle_selection(ids[3])
    await styling.wardrobe.delete_selected()
    assert styling.session.selected_wardrobe_items == []
    assert sorted(i.id for i in await store.get_all_wardrobe_items()) == [ids[0], ids[2]]


@pytest.mark.asyncio
async def test_drag_reorder_persists(make_app, store):
    styling, _ = await _wardrobe(make_app, store, 3)
    shown = [e.item.id for e in styling.navigation.panels["wardrobe"].model.entries]
    a, b, c = shown
    await styling.wardrobe.reorder(c, a)
    assert [e.item.id for e in styling.navigation.panels["wardrobe"].model.entries] == [c, a, b]
    assert [i.id for i in await store.get_all_wardrobe_items()] == [c, a, b]


@pytest.mark.asyncio
async def test_wardrobe_recommendation_uses_selection_order(make_app, store, use_provider):
    prov = use_provider(FakeProvider(selected=[1]))
    styling, ids = await _wardrobe(make_app, store, 3)
    await styling.wardrobe.toggle_selection(ids[2])
    await styling.wardrobe.toggle_selection(ids[0])
    styling.wardrobe.select_context("date night")

    result = await styling.wardrobe.get_recommendation()
    assert prov.analyzed and sorted(prov.analyzed) == ["item0.png", "item2.png"]
    assert [a.name for a in result.attributes] == ["item2.png", "item0.png"]
    assert result.images == [PNG, PNG]
    assert result.context == "Date Night"
    assert styling.session.analysis_source == "wardrobe"
    assert styling.navigation.active_view == "results"
    # the upload form was not touched
    assert styling.session.uploads == []


@pytest.mark.asyncio
async def test_wardrobe_recommendation_needs_selection_and_occasion(make_app, store, provider):
    styling, ids = await _wardrobe(make_app, store, 2)
    assert await styling.wardrobe.get_recommendation() is None
    await styling.wardrobe.toggle_selection(ids[0])
    assert styling.wardrobe.can_submit is False
    assert await styling.wardrobe.get_recommendation() is None
    styling.wardrobe.set_custom_context("picnic")
    assert styling.wardrobe.can_submit
    assert provider.recommend_calls == []
