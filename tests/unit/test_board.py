import pytest

from core.errors import StoreUnavailable
from modules.pipeline.board import KanbanBoard, build_columns
from modules.pipeline.controller import BoardStateController, MutationState
from modules.pipeline.schemas import Deal


async def make_board(store):
    controller = BoardStateController(store)
    await controller.refresh()
    return KanbanBoard(controller)


class TestColumns:

    def test_build_columns_groups_main_and_auxiliary(self):
        deals = [
            Deal(id="1", firm_name="A", stage="won"),
            Deal(id="2", firm_name="B", stage="Not Interested"),
        ]
        columns = build_columns(deals)

        assert len(columns["main"]) == 7
        assert len(columns["auxiliary"]) == 3
        assert columns["main"][-1].stage.id == "won"
        assert columns["main"][-1].count == 1
        assert columns["auxiliary"][2].deals[0].id == "2"

    @pytest.mark.asyncio
    async def test_board_status(self, fake_store):
        board = await make_board(fake_store)
        status = board.status()
        assert status["total"] == 3
        assert status["loading"] is False
        assert status["error"] is None


class TestDragAndDrop:

    @pytest.mark.asyncio
    async def test_drag_and_drop_moves_deal(self, fake_store):
        board = await make_board(fake_store)

        assert board.drag_start("3").firm_name == "Acme Capital"
        mutation = await board.drop("contract-negotiations")
        board.drag_end()

        assert mutation.state == MutationState.CONFIRMED
        assert board.dragged_deal is None
        column = next(c for c in board.columns()["main"] if c.stage.id == "contract-negotiations")
        assert [d.id for d in column.deals] == ["3"]

    @pytest.mark.asyncio
    async def test_drop_outside_a_column_is_noop(self, fake_store):
        board = await make_board(fake_store)
        board.drag_start("3")

        assert await board.drop("trash-can") is None
        # Los títulos no son ids de columna
        assert await board.drop("Won") is None
        board.drag_end()

        assert board.controller.get_deal("3").stage == "meeting-booked"
        assert not [c for c in fake_store.calls if c[0] == "update_deal"]

    @pytest.mark.asyncio
    async def test_drop_without_drag_is_noop(self, fake_store):
        board = await make_board(fake_store)
        assert await board.drop("won") is None

    @pytest.mark.asyncio
    async def test_failed_drop_shows_error(self, fake_store):
        board = await make_board(fake_store)
        fake_store.fail_updates = StoreUnavailable("down")

        board.drag_start("4")
        mutation = await board.drop("won")
        board.drag_end()

        assert mutation.state == MutationState.ROLLED_BACK
        assert board.status()["error"] == "Could not move Cedar Holdings: down"
        assert board.dragged_deal is None
