"""
Terminal view of the pipeline board, driven through the HTTP API.

    python -m scripts.board_cli list
    python -m scripts.board_cli move <deal_id> <stage_id>
    python -m scripts.board_cli create "Bridge Partners" active-conversation
    python -m scripts.board_cli delete <deal_id>
"""
import argparse
import asyncio

from core.jinja_filters import currency_format
from modules.pipeline.api_client import PipelineApiClient
from modules.pipeline.board import KanbanBoard
from modules.pipeline.controller import BoardStateController


def print_board(board: KanbanBoard):
    status = board.status()
    if status["error"]:
        print(f"Error: {status['error']}")
    for group in ("main", "auxiliary"):
        print(f"== {group.upper()} ==")
        for column in board.columns()[group]:
            print(f"[{column.stage.title}] ({column.count})")
            for deal in column.deals:
                value = currency_format(deal.value)
                print(f"   - {deal.firm_name}  {value}  (id={deal.id})")
    print(f"Total: {status['total']} deals")


async def main(args):
    async with PipelineApiClient(base_url=args.base_url) as client:
        controller = BoardStateController(client)
        controller.subscribe("error", lambda message, category: print(f"[{category}] {message}"))
        board = KanbanBoard(controller)
        await controller.refresh()

        if args.command == "move":
            board.drag_start(args.deal_id)
            mutation = await board.drop(args.stage_id)
            board.drag_end()
            if mutation is None:
                print("Nothing to move.")
            else:
                print(f"Move {mutation.deal_id}: {mutation.from_stage} -> {mutation.to_stage} ({mutation.state.value})")
        elif args.command == "create":
            deal = await controller.create_deal({"firm_name": args.firm_name, "stage": args.stage_id, "value": args.value})
            if deal:
                print(f"Created {deal.firm_name} (id={deal.id})")
        elif args.command == "delete":
            if await controller.delete_deal(args.deal_id):
                print(f"Deleted {args.deal_id}")

        print_board(board)
        await controller.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Pipeline board from the terminal")
    parser.add_argument("--base-url", default=None, help="API base URL (default: API_BASE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list")
    move = sub.add_parser("move")
    move.add_argument("deal_id")
    move.add_argument("stage_id")
    create = sub.add_parser("create")
    create.add_argument("firm_name")
    create.add_argument("stage_id")
    create.add_argument("--value", default="")
    delete = sub.add_parser("delete")
    delete.add_argument("deal_id")

    asyncio.run(main(parser.parse_args()))
