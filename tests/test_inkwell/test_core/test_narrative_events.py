from inkwell.core.events import Event, EventBus, NarrativeEvent


def test_event_bus_subscribe_publish(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(NarrativeEvent.ITEM_TAKEN, handler)
    event_bus.publish(NarrativeEvent.ITEM_TAKEN, item_id="rusty_key")

    assert len(received) == 1
    assert received[0].type == NarrativeEvent.ITEM_TAKEN
    assert received[0]["item_id"] == "rusty_key"


def test_lambda_handlers_stay_subscribed(event_bus):
    received = []
    event_bus.subscribe(NarrativeEvent.NODE_ENTERED, lambda event: received.append(event["node_id"]))

    event_bus.publish(NarrativeEvent.NODE_ENTERED, node_id="start")
    event_bus.publish(NarrativeEvent.NODE_ENTERED, node_id="after")

    assert received == ["start", "after"]


def test_handlers_run_in_subscription_order(event_bus):
    order = []
    event_bus.subscribe(NarrativeEvent.CHOICE_SELECTED, lambda e: order.append("first"))
    event_bus.subscribe(NarrativeEvent.CHOICE_SELECTED, lambda e: order.append("second"))

    event_bus.publish(NarrativeEvent.CHOICE_SELECTED)

    assert order == ["first", "second"]


def test_event_bus_unsubscribe(event_bus):
    received = []
    def handler(event):
        received.append(event)

    event_bus.subscribe(NarrativeEvent.ITEM_TAKEN, handler)
    event_bus.unsubscribe(NarrativeEvent.ITEM_TAKEN, handler)
    event_bus.unsubscribe(NarrativeEvent.GAME_SAVED, handler)
    event_bus.publish(NarrativeEvent.ITEM_TAKEN)

    assert received == []


def test_clear(event_bus):
    received = []
    event_bus.subscribe(NarrativeEvent.GAME_SAVED, received.append)
    event_bus.subscribe(NarrativeEvent.GAME_LOADED, received.append)

    event_bus.clear(NarrativeEvent.GAME_SAVED)
    event_bus.publish(NarrativeEvent.GAME_SAVED)
    event_bus.publish(NarrativeEvent.GAME_LOADED)
    assert [event.type for event in received] == [NarrativeEvent.GAME_LOADED]

    event_bus.clear()
    event_bus.publish(NarrativeEvent.GAME_LOADED)
    assert len(received) == 1


def test_failing_handler_does_not_stop_others(event_bus, caplog):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    event_bus.subscribe(NarrativeEvent.GAME_LOADED, broken)
    event_bus.subscribe(NarrativeEvent.GAME_LOADED, received.append)

    event_bus.publish(NarrativeEvent.GAME_LOADED)

    assert len(received) == 1
    assert "Error in event handler" in caplog.text


def test_events_published_during_dispatch_are_queued(event_bus):
    order = []

    def on_started(event):
        order.append("started")
        event_bus.publish(NarrativeEvent.NODE_ENTERED)
        order.append("started done")

    def on_node(event):
        order.append("node")

    event_bus.subscribe(NarrativeEvent.DIALOGUE_STARTED, on_started)
    event_bus.subscribe(NarrativeEvent.NODE_ENTERED, on_node)
    event_bus.publish(NarrativeEvent.DIALOGUE_STARTED)

    assert order == ["started", "started done", "node"]


def test_bus_recovers_after_handler_error(event_bus):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    event_bus.subscribe(NarrativeEvent.NOTE_WRITTEN, broken)
    event_bus.publish(NarrativeEvent.NOTE_WRITTEN)

    event_bus.subscribe(NarrativeEvent.NOTE_DELETED, received.append)
    event_bus.publish(NarrativeEvent.NOTE_DELETED)
    assert len(received) == 1


def test_event_get_default():
    event = Event(type=NarrativeEvent.LOCALE_CHANGED, data={"locale": "fr"})
    assert event.get("locale") == "fr"
    assert event.get("missing", "en") == "en"
