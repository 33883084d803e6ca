import asyncio
import typing

from crew_productivity.planning.plan_model import Plan, create_plan
from crew_productivity.schema import Task
from crew_productivity.store import InMemoryStore, Store


def test_reads_return_copies():
    store = InMemoryStore([Task(id="a", title="A")])
    task = asyncio.run(store.get_task("a"))
    task.title = "changed"
    assert store.tasks["a"].title == "A"
    assert asyncio.run(store.get_task("missing")) is None


def test_plan_storage():
    store = InMemoryStore()
    plan = create_plan("Hall 2")
    asyncio.run(store.save_plan(plan))

    loaded = asyncio.run(store.get_plan(plan.id))
    assert loaded == plan
    assert loaded is not plan
    assert [p.id for p in asyncio.run(store.get_all_plans())] == [plan.id]

    asyncio.run(store.delete_plan(plan.id))
    assert asyncio.run(store.get_plan(plan.id)) is None


def test_store_protocol_plan_annotations():
    hints = typing.get_type_hints(InMemoryStore.get_plan)
    assert hints["return"] == typing.Optional[Plan]
    assert typing.get_type_hints(InMemoryStore.get_all_plans)["return"] == list[Plan]
    assert typing.get_type_hints(Store.save_plan)["plan"] is Plan
