from conftest import RecordingListener

from depgraph.graph.events import GraphListener, ListenerNotifier, PhaseEventType, ResolutionEventType
from depgraph.graph.model import DependencyGraph
from depgraph.processing.maven_model import ArtifactCoordinate


class FailingListener(GraphListener):
    def graph_phase_event(self, event):
        raise RuntimeError("listener bug")


def _graph():
    return DependencyGraph(ArtifactCoordinate("g", "root", "1"))


def test_listeners_called_in_registration_order():
    calls = []

    class Tagged(GraphListener):
        def __init__(self, tag):
            self.tag = tag

        def graph_phase_event(self, event):
            calls.append(self.tag)

    notifier = ListenerNotifier([Tagged("first"), Tagged("second")])
    notifier.phase_event(PhaseEventType.NEW, _graph())
    assert calls == ["first", "second"]


def test_failing_listener_is_logged_and_skipped(caplog):
    recorder = RecordingListener()
    notifier = ListenerNotifier([FailingListener(), recorder])

    notifier.phase_event(PhaseEventType.DONE, _graph())

    assert recorder.phase_types() == [PhaseEventType.DONE]
    assert "FailingListener" in caplog.text


def test_listener_registration():
    recorder = RecordingListener()
    notifier = ListenerNotifier()
    notifier.add_listener(recorder)
    notifier.add_listener(recorder)
    graph = _graph()

    notifier.resolution_event(ResolutionEventType.ADDING_MODEL, graph, graph.root_node, "g:root:1")
    notifier.remove_listener(recorder)
    notifier.resolution_event(ResolutionEventType.ADDING_MODEL, graph, graph.root_node, "g:root:1")

    assert len(recorder.resolutions) == 1
    assert recorder.resolutions[0].detail == "g:root:1"


def test_omit_nearer_alias():
    assert ResolutionEventType.CONFLICT_OMIT_NEARER is ResolutionEventType.CONFLICT_OMIT_FOR_NEARER
