import threading

import pytest

from npdkit.tomb import Tomb


def test_tomb_workflow():
    tomb = Tomb()
    workflow = []
    waited = []

    def worker():
        try:
            waited.append(tomb.stopping().wait(timeout=5))
            workflow.append("stopping")
        finally:
            tomb.done()

    thread = threading.Thread(target=worker)
    thread.start()
    workflow.append("stop")
    tomb.stop()
    workflow.append("stopped")
    thread.join(timeout=5)
    assert workflow == ["stop", "stopping", "stopped"]
    assert waited == [True]
    assert tomb.stopping().is_set() is True


def test_stopping_not_set_before_stop():
    tomb = Tomb()
    assert tomb.stopping().is_set() is False


def test_done_twice_raises():
    tomb = Tomb()
    tomb.done()
    with pytest.raises(RuntimeError):
        tomb.done()


def test_stop_twice_raises():
    tomb = Tomb()
    tomb.done()
    tomb.stop()
    with pytest.raises(RuntimeError):
        tomb.stop()