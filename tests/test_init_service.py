import pytest

from vnodekit.init_service import (
    InitError,
    InitService,
    InitSuccess,
    ServiceRestart,
    ServiceStart,
    ServiceStatus,
    ServiceStatusReport,
    ServiceStop,
)


@pytest.fixture
def init():
    return InitService()


def test_start_first_service(init):
    resp = init.handle_request(ServiceStart("net"))
    assert resp == InitSuccess("Service 'net' started with PID 1000.")
    assert init.running_vnodes["net"].capabilities == ["NetworkAccess"]


def test_pids_increase(init):
    init.handle_request(ServiceStart("a"))
    init.handle_request(ServiceStart("b"))
    assert init.running_vnodes["b"].pid == init.running_vnodes["a"].pid + 1


def test_status_running_and_not(init):
    init.handle_request(ServiceStart("a"))
    pid = init.running_vnodes["a"].pid
    assert init.handle_request(ServiceStatus("a")) == ServiceStatusReport("a", True, pid)
    assert init.handle_request(ServiceStatus("b")) == ServiceStatusReport("b", False, None)


def test_stop(init):
    init.handle_request(ServiceStart("a"))
    assert init.handle_request(ServiceStop("a")) == InitSuccess("Service 'a' stopped.")
    assert "a" not in init.running_vnodes
    assert init.handle_request(ServiceStop("a")) == InitError("Service 'a' not running.")


def test_restart_assigns_new_pid(init):
    init.handle_request(ServiceStart("a"))
    old = init.running_vnodes["a"].pid
    resp = init.handle_request(ServiceRestart("a"))
    assert isinstance(resp, InitSuccess)
    assert init.running_vnodes["a"].pid == old + 1


def test_restart_of_stopped_service_starts_it(init):
    init.handle_request(ServiceRestart("x"))
    assert init.handle_request(ServiceStatus("x")).is_running


def test_unknown_request_raises(init):
    with pytest.raises(TypeError):
        init.handle_request(42)


def test_serve_skips_garbage(init):
    responses = list(init.serve([ServiceStart("a"), "junk", ServiceStatus("a")]))
    assert len(responses) == 2
    assert responses[1].is_running