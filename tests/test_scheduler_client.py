from unittest.mock import patch

import pytest
import requests

from fakes import (
    SCHEDULER_POST,
    DictClusters,
    FakeResp,
    disk,
    disk_action,
    make_config,
    new_disk,
    pool_ref,
    scheduler_result,
    vm_action,
)

from placement.app.errors import NoRecommendationError, PlacementPrerequisiteError, PlacementRequestError
from placement.app.scheduler_client import RecommendationClient, parse_recommendation, select_first_recommendation
from placement.app.schemas import ConfigSpec, DiskPlacementAction, VmPlacement


def make_client(**config) -> RecommendationClient:
    return RecommendationClient(make_config(**config), DictClusters("group-p1"))


def spec_with_disk() -> ConfigSpec:
    return ConfigSpec(name="vm1", device_change=[new_disk(disk(5, 1000, 0))])


def test_posts_request_with_timeout_and_parses_actions():
    client = make_client(timeout_s=12)
    result = scheduler_result(vm_action("ds-b"), disk_action((5, "ds-a")))

    with patch(SCHEDULER_POST, return_value=FakeResp(result)) as post:
        recommendations = client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")

    url = post.call_args.args[0]
    assert url == "http://scheduler.test/recommend-datastores"
    assert post.call_args.kwargs["timeout"] == 12
    body = post.call_args.kwargs["json"]
    assert body["pod_selection_spec"]["storage_pod"]["value"] == "group-p1"

    assert recommendations == result["recommendations"]
    actions = parse_recommendation(recommendations[0]).actions
    assert isinstance(actions[0], VmPlacement)
    assert actions[0].datastore.value == "ds-b"
    assert isinstance(actions[1], DiskPlacementAction)
    assert [(p.disk_id, p.datastore.value) for p in actions[1].placements] == [(5, "ds-a")]


def test_unmanaged_endpoint_is_a_prerequisite_failure():
    client = make_client(api_type="HostAgent")

    with patch(SCHEDULER_POST) as post:
        with pytest.raises(PlacementPrerequisiteError, match="requires vCenter"):
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")
    post.assert_not_called()


def test_unknown_datastore_cluster_is_a_prerequisite_failure():
    client = make_client()

    with patch(SCHEDULER_POST) as post:
        with pytest.raises(PlacementPrerequisiteError, match="datastore cluster"):
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-missing")
    post.assert_not_called()


def test_timeout_wraps_cause():
    client = make_client()

    with patch(SCHEDULER_POST, side_effect=requests.Timeout("read timed out")):
        with pytest.raises(PlacementRequestError, match="timed out") as excinfo:
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")
    assert isinstance(excinfo.value.__cause__, requests.Timeout)


def test_transport_and_http_errors_wrap_cause():
    client = make_client()

    with patch(SCHEDULER_POST, side_effect=requests.ConnectionError("refused")):
        with pytest.raises(PlacementRequestError):
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")

    with patch(SCHEDULER_POST, return_value=FakeResp({}, 503)):
        with pytest.raises(PlacementRequestError) as excinfo:
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")
    assert isinstance(excinfo.value.__cause__, requests.HTTPError)


def test_malformed_response_is_a_request_error():
    client = make_client()

    with patch(SCHEDULER_POST, return_value=FakeResp({"recommendations": "nope"})):
        with pytest.raises(PlacementRequestError, match="invalid"):
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")


def test_empty_result_raises_no_recommendation():
    client = make_client()

    with patch(SCHEDULER_POST, return_value=FakeResp({"recommendations": []})) as post:
        with pytest.raises(NoRecommendationError):
            client.recommend_datastores_for_create(spec_with_disk(), pool_ref(), "group-p1")
    assert post.call_count == 1


def test_parse_skips_foreign_actions():
    raw = {
        "key": "7",
        "actions": [
            {"type": "ClusterMigrationAction", "destination": {"type": "HostSystem", "value": "host-1"}},
            vm_action("ds-b"),
        ],
    }

    recommendation = parse_recommendation(raw)

    assert recommendation.key == "7"
    assert len(recommendation.actions) == 1
    assert isinstance(recommendation.actions[0], VmPlacement)


def test_parse_rejects_vm_action_without_destination():
    with pytest.raises(PlacementRequestError):
        parse_recommendation({"actions": [{"type": "StoragePlacementAction"}]})


def test_parse_rejects_malformed_recommendation():
    with pytest.raises(PlacementRequestError, match="invalid storage DRS recommendation"):
        parse_recommendation({"actions": "nope"})


def test_first_recommendation_is_selected():
    first = {"key": "1", "actions": [vm_action("a")]}
    second = {"key": "2", "actions": [{"type": "StoragePlacementAction"}]}

    assert select_first_recommendation([first, second]) is first
