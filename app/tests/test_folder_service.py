"""
文件夹服务测试
"""

import pytest

from app.core.exceptions import FolderCycleException, ResourceNotFoundException
from app.models.folder import Folder
from app.schemas.note import NoteData
from app.services.folder import would_create_cycle, collect_descendants

from app.tests.fakes import TEST_USER_ID, OTHER_USER_ID


async def folder_parents(folder_service, user_id=TEST_USER_ID) -> dict:
    return {f.id: f.parent_id for f in await folder_service.get_folders(user_id)}


@pytest.fixture
async def tree(folder_service):
    """root -> child -> grandchild, sibling"""
    root = await folder_service.create_folder(TEST_USER_ID, "Root")
    child = await folder_service.create_folder(TEST_USER_ID, "Child", root)
    grandchild = await folder_service.create_folder(TEST_USER_ID, "Grandchild", child)
    sibling = await folder_service.create_folder(TEST_USER_ID, "Sibling")
    return {"root": root, "child": child, "grandchild": grandchild, "sibling": sibling}


class TestCycleHelpers:
    """祖先链与后代收集测试"""

    def test_would_create_cycle(self):
        parents = {"a": None, "b": "a", "c": "b"}
        assert would_create_cycle(parents, "a", "c")
        assert would_create_cycle(parents, "a", "a")
        assert not would_create_cycle(parents, "c", "a")
        assert not would_create_cycle(parents, "a", None)

    def test_existing_cycle_terminates(self):
        parents = {"x": "y", "y": "x", "a": None}
        assert would_create_cycle(parents, "a", "x")

    def test_collect_descendants(self):
        parents = {"a": None, "b": "a", "c": "b", "d": "a", "e": None}
        assert sorted(collect_descendants(parents, "a")) == ["b", "c", "d"]
        assert collect_descendants(parents, "e") == []

    def test_collect_descendants_with_cycle(self):
        parents = {"a": "c", "b": "a", "c": "b"}
        assert sorted(collect_descendants(parents, "a")) == ["b", "c"]


class TestFolderService:
    """文件夹服务测试"""

    @pytest.mark.asyncio
    async def test_create_and_list_sorted_by_name(self, folder_service):
        await folder_service.create_folder(TEST_USER_ID, "Physics")
        await folder_service.create_folder(TEST_USER_ID, "Biology")
        await folder_service.create_folder(OTHER_USER_ID, "Art")

        folders = await folder_service.get_folders(TEST_USER_ID)
        assert [f.name for f in folders] == ["Biology", "Physics"]

    @pytest.mark.asyncio
    async def test_create_with_unknown_parent(self, folder_service):
        with pytest.raises(ResourceNotFoundException):
            await folder_service.create_folder(TEST_USER_ID, "Orphan", "missing")

    @pytest.mark.asyncio
    async def test_parent_must_belong_to_user(self, folder_service):
        other = await folder_service.create_folder(OTHER_USER_ID, "Theirs")
        with pytest.raises(ResourceNotFoundException):
            await folder_service.create_folder(TEST_USER_ID, "Mine", other)

    @pytest.mark.asyncio
    async def test_rename(self, folder_service, tree):
        await folder_service.update_folder(TEST_USER_ID, tree["child"], "Renamed")
        names = {f.id: f.name for f in await folder_service.get_folders(TEST_USER_ID)}
        assert names[tree["child"]] == "Renamed"

    @pytest.mark.asyncio
    async def test_move_into_self_or_descendant_fails(self, folder_service, tree):
        before = await folder_parents(folder_service)

        for target in (tree["root"], tree["child"], tree["grandchild"]):
            with pytest.raises(FolderCycleException):
                await folder_service.move_folder(TEST_USER_ID, tree["root"], target)

        assert await folder_parents(folder_service) == before

    @pytest.mark.asyncio
    async def test_move_to_other_branch_and_root(self, folder_service, tree):
        await folder_service.move_folder(TEST_USER_ID, tree["child"], tree["sibling"])
        assert (await folder_parents(folder_service))[tree["child"]] == tree["sibling"]

        await folder_service.move_folder(TEST_USER_ID, tree["child"], None)
        assert (await folder_parents(folder_service))[tree["child"]] is None

    @pytest.mark.asyncio
    async def test_move_to_missing_parent(self, folder_service, tree):
        with pytest.raises(ResourceNotFoundException):
            await folder_service.move_folder(TEST_USER_ID, tree["child"], "missing")

    @pytest.mark.asyncio
    async def test_delete_removes_descendants_and_detaches_notes(self, folder_service, note_service, tree):
        in_child = await note_service.save_note(
            TEST_USER_ID, NoteData(title="In child", folder_id=tree["child"])
        )
        in_grandchild = await note_service.save_note(
            TEST_USER_ID, NoteData(title="In grandchild", folder_id=tree["grandchild"])
        )
        in_sibling = await note_service.save_note(
            TEST_USER_ID, NoteData(title="In sibling", folder_id=tree["sibling"])
        )

        removed = await folder_service.delete_folder(TEST_USER_ID, tree["child"])

        assert sorted(removed) == sorted([tree["child"], tree["grandchild"]])
        remaining = await folder_parents(folder_service)
        assert set(remaining) == {tree["root"], tree["sibling"]}

        placement = {n.id: n.folder_id for n in await note_service.list_notes(TEST_USER_ID)}
        assert placement == {in_child: None, in_grandchild: None, in_sibling: tree["sibling"]}

    @pytest.mark.asyncio
    async def test_delete_is_scoped_by_user(self, folder_service, tree):
        with pytest.raises(ResourceNotFoundException):
            await folder_service.delete_folder(OTHER_USER_ID, tree["root"])

    @pytest.mark.asyncio
    async def test_move_note(self, folder_service, note_service, tree):
        note_id = await note_service.save_note(TEST_USER_ID, NoteData(title="Loose"))

        await folder_service.move_note(TEST_USER_ID, note_id, tree["sibling"])
        assert (await note_service.list_notes(TEST_USER_ID))[0].folder_id == tree["sibling"]

        await folder_service.move_note(TEST_USER_ID, note_id, None)
        assert (await note_service.list_notes(TEST_USER_ID))[0].folder_id is None

    @pytest.mark.asyncio
    async def test_move_note_of_other_user(self, folder_service, note_service):
        note_id = await note_service.save_note(OTHER_USER_ID, NoteData(title="Theirs"))
        with pytest.raises(ResourceNotFoundException):
            await folder_service.move_note(TEST_USER_ID, note_id, None)


class TestFolderTree:
    """文件夹树测试"""

    @pytest.mark.asyncio
    async def test_tree_structure(self, folder_service, note_service, tree):
        note_id = await note_service.save_note(
            TEST_USER_ID, NoteData(title="Deep note", folder_id=tree["grandchild"])
        )
        loose_id = await note_service.save_note(TEST_USER_ID, NoteData(title="Loose note"))

        roots = await folder_service.build_folder_tree(TEST_USER_ID)

        folders = [n for n in roots if n.type == "folder"]
        notes = [n for n in roots if n.type == "note"]
        assert [f.name for f in folders] == ["Root", "Sibling"]
        assert [n.id for n in notes] == [loose_id]

        child = folders[0].children[0]
        assert child.name == "Child"
        grandchild = child.children[0]
        assert grandchild.name == "Grandchild"
        assert [n.id for n in grandchild.children] == [note_id]

    @pytest.mark.asyncio
    async def test_cycles_and_orphans_are_promoted_once(self, folder_service, session_factory):
        # 直接写入数据库构造异常数据
        async with session_factory() as session:
            session.add_all([
                Folder(id="a", user_id=TEST_USER_ID, name="A", parent_id="b"),
                Folder(id="b", user_id=TEST_USER_ID, name="B", parent_id="a"),
                Folder(id="c", user_id=TEST_USER_ID, name="C", parent_id="a"),
                Folder(id="orphan", user_id=TEST_USER_ID, name="Orphan", parent_id="gone"),
            ])
            await session.commit()

        roots = await folder_service.build_folder_tree(TEST_USER_ID)

        def walk(nodes):
            for node in nodes:
                yield node.id
                if node.type == "folder":
                    yield from walk(node.children)

        ids = list(walk(roots))
        assert sorted(ids) == ["a", "b", "c", "orphan"]
        assert "orphan" in [n.id for n in roots]
