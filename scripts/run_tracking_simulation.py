import logging
import os
import sys
import time
from datetime import timedelta

import pandas as pd

from routing.route_service import RoutingResolver, build_gps_route
from tracking.formatting import accuracy_label, format_distance, format_duration
from tracking.geolocation import ScriptedPositionSource
from tracking.manager import TrackingListener, TrackingSessionManager
from tracking.models import LocationSample, from_rfc3339
from tracking.persistence import InMemoryKeyValueStore


class ReplayClock:
    """Clock that follows the timestamps of the replayed samples."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now


class NoopTicker:
    def __init__(self, interval_s, callback):
        pass

    def start(self):
        pass

    def cancel(self, wait=True):
        pass


class ConsoleListener(TrackingListener):
    def __init__(self):
        self.accepted = 0

    def on_session_start(self, session):
        print(f"Session {session.id} started")

    def on_progress(self, progress):
        if progress.sample is None:
            return
        self.accepted += 1
        print(
            f"  [{format_duration(progress.elapsed_s):>9}] "
            f"{progress.sample.lat:.5f}, {progress.sample.lng:.5f} "
            f"({accuracy_label(progress.sample.accuracy)} accuracy) "
            f"total {format_distance(progress.total_distance_m)}"
        )

    def on_error(self, session, message):
        print(f"  [warning] {message}")


def load_track(filepath):
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    absolute_path = filepath if os.path.isabs(filepath) else os.path.join(base_dir, filepath)

    df = pd.read_csv(absolute_path)
    df = df.sort_values("timestamp")
    samples = []
    for row in df.itertuples(index=False):
        accuracy = None if pd.isna(row.accuracy) else float(row.accuracy)
        samples.append(
            LocationSample.at(
                float(row.lat),
                float(row.lng),
                timestamp=from_rfc3339(str(row.timestamp)),
                accuracy=accuracy,
            )
        )
    employee_id = str(df["employee_id"].iloc[0]) if "employee_id" in df.columns else "emp-001"
    return employee_id, samples


def run_simulation(filepath="mock_track.csv", use_road_routing=False, restart_at=None):
    """
    Replays a recorded track through the session manager.
    restart_at: replay index at which the manager is thrown away and a new one
    restores the session from the shared store (simulates an app restart).
    """
    print("=== STARTING TRACKING REPLAY ===")
    employee_id, samples = load_track(filepath)
    if not samples:
        print("Track is empty, nothing to replay.")
        return None
    print(f"Loaded {len(samples)} samples for {employee_id}.\n")

    clock = ReplayClock(samples[0].timestamp)
    store = InMemoryKeyValueStore()
    listener = ConsoleListener()

    def new_manager():
        source = ScriptedPositionSource(current=samples[0])
        manager = TrackingSessionManager(
            position_source=source,
            store=store,
            clock=clock,
            listeners=[listener],
            ticker_factory=NoopTicker,
        )
        return source, manager

    source, manager = new_manager()
    manager.start(employee_id)

    for index, sample in enumerate(samples[1:], start=1):
        if restart_at is not None and index == restart_at:
            print("\n--- simulated restart ---")
            source, manager = new_manager()
            manager.restore(employee_id)
        clock.now = sample.timestamp
        source.emit(sample)

    clock.now = samples[-1].timestamp + timedelta(seconds=5)
    session = manager.stop()

    print("\n--- Session Summary ---")
    print(f"Samples received: {len(samples)}, accepted: {len(session.route)}")
    print(f"Duration: {format_duration(session.duration_s)}")
    print(f"Live distance: {format_distance(session.total_distance_m)}")

    gps_route = build_gps_route(session.route)
    print(
        f"GPS route: {len(gps_route.coordinates)} points, {format_distance(gps_route.distance_m)}, "
        f"{gps_route.confidence.value} confidence"
    )

    providers = None if use_road_routing else []
    started = time.time()
    with RoutingResolver(providers=providers) as resolver:
        road_route = resolver.resolve_route(session.route)
    print(
        f"Resolved route ({road_route.source.value}): {len(road_route.segments)} segments, "
        f"{format_distance(road_route.distance_m)} in {time.time() - started:.2f}s"
    )

    print("\n=== REPLAY COMPLETE ===")
    return session


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    track_file = sys.argv[1] if len(sys.argv) > 1 else "mock_track.csv"
    run_simulation(track_file, use_road_routing=os.getenv("USE_ROAD_ROUTING") == "1", restart_at=40)
