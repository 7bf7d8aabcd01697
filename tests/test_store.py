"""Tests for the conversation store."""

import asyncio
import json

import pytest

from vectorlink.conversations.models import DEFAULT_CONVERSATION_ID
from vectorlink.conversations.store import ConversationStore


@pytest.fixture
def store_path(temp_dir):
    return temp_dir / "conversations.json"


@pytest.fixture
def store(store_path):
    store = ConversationStore(store_path)
    store.load()
    return store


class TestConversationStore:
    """Tests for ConversationStore."""

    def test_default_always_present(self, store):
        assert [c.id for c in store.list_conversations()] == [DEFAULT_CONVERSATION_ID]
        assert store.selected_id == DEFAULT_CONVERSATION_ID

    def test_create_selects(self, store):
        state = store.create("Research", prompt_override="Cite sources")

        assert state.id.startswith("conv-")
        assert store.selected_id == state.id
        assert store.get(state.id).prompt_override == "Cite sources"

    def test_create_unique_ids(self, store):
        ids = {store.create(f"c{n}").id for n in range(5)}

        assert len(ids) == 5

    def test_save_and_load(self, store, store_path):
        state = store.create("Research")
        store.set_head(state.id, "resp_9")

        reloaded = ConversationStore(store_path)
        reloaded.load()

        assert reloaded.selected_id == state.id
        assert reloaded.get(state.id).head_pointer == "resp_9"
        assert reloaded.get(state.id).name == "Research"

    def test_select_unknown(self, store):
        with pytest.raises(KeyError):
            store.select("conv-missing")

    def test_update(self, store):
        state = store.create("Old", prompt_override="p")

        store.update(state.id, name="New")
        assert store.get(state.id).name == "New"
        assert store.get(state.id).prompt_override == "p"

        store.update(state.id, prompt_override="")
        assert store.get(state.id).prompt_override is None

    def test_update_unknown(self, store):
        with pytest.raises(KeyError):
            store.update("conv-missing", name="x")

    def test_delete_default_refused(self, store):
        with pytest.raises(ValueError):
            store.delete(DEFAULT_CONVERSATION_ID)

    def test_delete_selected_falls_back(self, store):
        state = store.create("Temp")

        store.delete(state.id)

        assert store.get(state.id) is None
        assert store.selected_id == DEFAULT_CONVERSATION_ID

    def test_delete_other_keeps_selection(self, store):
        first = store.create("First")
        second = store.create("Second")

        store.delete(first.id)

        assert store.selected_id == second.id

    def test_corrupt_file_resets(self, store_path):
        store_path.write_text("{broken")

        store = ConversationStore(store_path)
        store.load()

        assert store.selected_id == DEFAULT_CONVERSATION_ID

    def test_unknown_selection_falls_back(self, store_path):
        store_path.write_text(
            json.dumps({"selected": "conv-gone", "conversations": []})
        )

        store = ConversationStore(store_path)
        store.load()

        assert store.selected_id == DEFAULT_CONVERSATION_ID

    def test_editing_context(self, store_path):
        store = ConversationStore(store_path)

        with store.editing() as s:
            created = s.create("Edited")

        data = json.loads(store_path.read_text())
        assert data["selected"] == created.id

    def test_in_memory_store(self):
        store = ConversationStore()
        store.create("Memory only")
        store.save()

        assert store.path is None


class TestHeadPointer:
    """Tests for head pointer writes."""

    def test_set_head_unknown(self, store):
        with pytest.raises(KeyError):
            store.set_head("conv-missing", "resp_1")

    @pytest.mark.asyncio
    async def test_advance_head(self, store):
        await store.advance_head(DEFAULT_CONVERSATION_ID, "resp_1")

        assert store.selected.head_pointer == "resp_1"

    @pytest.mark.asyncio
    async def test_advance_head_waits_for_lock(self, store):
        """A second writer waits until the first releases the head lock."""
        lock = store.head_lock(DEFAULT_CONVERSATION_ID)
        await lock.acquire()

        task = asyncio.create_task(store.advance_head(DEFAULT_CONVERSATION_ID, "resp_2"))
        await asyncio.sleep(0)
        assert store.selected.head_pointer is None

        store.set_head(DEFAULT_CONVERSATION_ID, "resp_1")
        lock.release()
        await task

        assert store.selected.head_pointer == "resp_2"

    def test_head_lock_per_conversation(self, store):
        other = store.create("Other")

        assert store.head_lock(other.id) is not store.head_lock(DEFAULT_CONVERSATION_ID)
        assert store.head_lock(other.id) is store.head_lock(other.id)
