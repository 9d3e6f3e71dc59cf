import threading

from tracking.ticker import ElapsedTicker


def test_ticker_calls_back_until_cancelled():
    ticked = threading.Event()
    calls = []

    def callback():
        calls.append(1)
        ticked.set()

    ticker = ElapsedTicker(0.01, callback)
    ticker.start()
    assert ticked.wait(2.0)
    assert ticker.is_running

    ticker.cancel()
    count = len(calls)
    assert not ticker.is_running
    # nothing new starts after cancel() returned
    threading.Event().wait(0.05)
    assert len(calls) == count


def test_ticker_survives_callback_errors():
    calls = []
    second_call = threading.Event()

    def callback():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        second_call.set()

    ticker = ElapsedTicker(0.01, callback)
    ticker.start()
    assert second_call.wait(2.0)
    ticker.cancel()


def test_cancel_before_start_is_safe():
    ticker = ElapsedTicker(0.01, lambda: None)
    ticker.cancel()
    assert not ticker.is_running
