"""Tests for connection lifecycle state."""

from domproxy.connection import ConnectionLifecycle, ConnectionStatus


class TestConnectionLifecycle:
    """Tests for ConnectionLifecycle."""

    def test_initial_state(self):
        """Test initial connection state."""
        lifecycle = ConnectionLifecycle()

        assert lifecycle.status == ConnectionStatus.DISCONNECTED
        assert not lifecycle.is_connected
        assert lifecycle.generation == 0
        assert lifecycle.close_reason is None

    def test_status_change(self):
        """Test status change with callback."""
        statuses = []

        def on_status_change(status: ConnectionStatus):
            statuses.append(status)

        lifecycle = ConnectionLifecycle(on_status_change=on_status_change)

        lifecycle.set_status(ConnectionStatus.CONNECTING)
        assert lifecycle.status == ConnectionStatus.CONNECTING
        assert statuses == [ConnectionStatus.CONNECTING]

        lifecycle.set_status(ConnectionStatus.CONNECTED)
        assert lifecycle.status == ConnectionStatus.CONNECTED
        assert lifecycle.is_connected
        assert statuses == [ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED]

    def test_same_status_does_not_notify(self):
        statuses = []
        lifecycle = ConnectionLifecycle(on_status_change=statuses.append)

        lifecycle.set_status(ConnectionStatus.DISCONNECTED)

        assert statuses == []

    def test_error_state(self):
        """Test error state with message."""
        lifecycle = ConnectionLifecycle()

        lifecycle.set_status(ConnectionStatus.ERROR, "Connection failed")

        assert lifecycle.status == ConnectionStatus.ERROR
        assert lifecycle.error_message == "Connection failed"

        lifecycle.set_status(ConnectionStatus.CONNECTING)
        assert lifecycle.error_message is None

    def test_callback_errors_are_contained(self):
        def on_status_change(status: ConnectionStatus):
            raise RuntimeError("callback broke")

        lifecycle = ConnectionLifecycle(on_status_change=on_status_change)
        lifecycle.set_status(ConnectionStatus.CONNECTED)

        assert lifecycle.is_connected

    def test_generation_counts_established_links(self):
        lifecycle = ConnectionLifecycle()

        lifecycle.set_status(ConnectionStatus.CONNECTING)
        lifecycle.set_status(ConnectionStatus.CONNECTED)
        lifecycle.set_status(ConnectionStatus.DISCONNECTED, "link lost")
        lifecycle.set_status(ConnectionStatus.RECONNECTING)
        lifecycle.set_status(ConnectionStatus.ERROR, "refused")
        lifecycle.set_status(ConnectionStatus.RECONNECTING)
        lifecycle.set_status(ConnectionStatus.CONNECTED)

        assert lifecycle.generation == 2

    def test_close_reason_kept_until_next_attempt(self):
        lifecycle = ConnectionLifecycle()
        lifecycle.set_status(ConnectionStatus.CONNECTED)

        lifecycle.set_status(ConnectionStatus.DISCONNECTED, "link lost")
        assert lifecycle.close_reason == "link lost"
        assert lifecycle.error_message is None

        lifecycle.set_status(ConnectionStatus.RECONNECTING)
        assert lifecycle.close_reason is None
