from agent_console.state import Step, StepPatch, display_status, display_timeline, reconcile


def _patch(step_id: str, **fields) -> StepPatch:
    return StepPatch.model_validate({"id": step_id, **fields})


def test_unknown_ids_append_in_arrival_order() -> None:
    timeline: tuple[Step, ...] = ()
    for step_id in ("b", "a", "c"):
        timeline = reconcile(timeline, _patch(step_id, name=step_id.upper(), status="running"))

    assert [step.id for step in timeline] == ["b", "a", "c"]
    assert timeline[0].name == "B"


def test_known_id_merges_in_place_and_keeps_omitted_fields() -> None:
    timeline = reconcile((), _patch("1", name="Open site", description="Load the form", status="running"))
    timeline = reconcile(timeline, _patch("2", name="Fill form", status="running"))

    timeline = reconcile(timeline, _patch("1", status="complete"))

    assert [step.id for step in timeline] == ["1", "2"]
    assert timeline[0].status == "complete"
    assert timeline[0].name == "Open site"
    assert timeline[0].description == "Load the form"


def test_length_matches_distinct_ids_and_first_seen_positions_hold() -> None:
    updates = ["x", "y", "x", "z", "y", "x"]
    timeline: tuple[Step, ...] = ()
    for index, step_id in enumerate(updates):
        timeline = reconcile(timeline, _patch(step_id, description=f"update {index}"))

    assert len(timeline) == 3
    assert [step.id for step in timeline] == ["x", "y", "z"]
    assert timeline[0].description == "update 5"


def test_duplicate_update_is_idempotent() -> None:
    update = _patch("7", name="Submit", status="complete")
    once = reconcile((), update)
    twice = reconcile(once, update)

    assert once == twice


def test_numeric_ids_match_string_ids() -> None:
    timeline = reconcile((), StepPatch.model_validate({"id": 3, "name": "Search"}))
    timeline = reconcile(timeline, StepPatch.model_validate({"id": "3", "status": "complete"}))

    assert len(timeline) == 1
    assert timeline[0].status == "complete"


def test_new_step_gets_defaults() -> None:
    (step,) = reconcile((), _patch("only"))

    assert step == Step(id="only", name="", description="", status="pending")


def test_only_last_running_step_displays_running() -> None:
    timeline = (
        Step(id="A", status="complete"),
        Step(id="B", status="running"),
        Step(id="C", status="running"),
    )

    assert [display_status(timeline, i) for i in range(3)] == ["complete", "complete", "running"]


def test_display_keeps_error_and_pending() -> None:
    timeline = (
        Step(id="A", status="error"),
        Step(id="B", status="pending"),
        Step(id="C", status="complete"),
    )

    displayed = display_timeline(timeline)

    assert [item.display_status for item in displayed] == ["error", "pending", "complete"]
    assert [item.is_last for item in displayed] == [False, False, True]
    assert displayed[0].step is timeline[0]


def test_display_is_recomputed_from_current_timeline() -> None:
    timeline = (Step(id="A", status="running"),)
    assert display_status(timeline, 0) == "running"

    timeline = reconcile(timeline, _patch("B", status="running"))
    assert display_status(timeline, 0) == "complete"
    assert timeline[0].status == "running"
