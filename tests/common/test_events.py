from cmake_driver.common.events import EventEmitter, Subscription


class TestEventEmitter:
    def test_fire_reaches_subscribers(self):
        emitter = EventEmitter("changed")
        received = []
        emitter.subscribe(received.append)
        emitter.fire("model")
        assert received == ["model"]

    def test_disposed_listener_is_not_called(self):
        emitter = EventEmitter("changed")
        received = []
        subscription = emitter.subscribe(received.append)
        subscription.dispose()
        emitter.fire("model")
        assert received == []
        assert len(emitter) == 0

    def test_failing_listener_does_not_block_others(self):
        emitter = EventEmitter("changed")
        received = []

        def broken(_payload):
            raise RuntimeError("listener bug")

        emitter.subscribe(broken)
        emitter.subscribe(received.append)
        emitter.fire(None)
        assert received == [None]

    def test_listener_may_unsubscribe_while_notified(self):
        emitter = EventEmitter("changed")
        received = []
        holder = {}

        def once(payload):
            received.append(payload)
            holder["sub"].dispose()

        holder["sub"] = emitter.subscribe(once)
        emitter.fire(1)
        emitter.fire(2)
        assert received == [1]

    def test_clear_drops_all_listeners(self):
        emitter = EventEmitter("changed")
        emitter.subscribe(lambda _: None)
        emitter.subscribe(lambda _: None)
        emitter.clear()
        assert len(emitter) == 0


class TestSubscription:
    def test_dispose_is_idempotent(self):
        released = []
        subscription = Subscription(lambda: released.append(True))
        subscription.dispose()
        subscription.dispose()
        assert released == [True]
        assert subscription.disposed

    def test_context_manager_disposes(self):
        released = []
        with Subscription(lambda: released.append(True)) as subscription:
            assert not subscription.disposed
        assert subscription.disposed
        assert released == [True]

    def test_without_release_callback(self):
        subscription = Subscription()
        subscription.dispose()
        assert subscription.disposed
