import pandas as pd
import numpy as np
from datetime import datetime, timezone, timedelta


def generate_mock_track(num_samples=240, employee_id="emp-001", output_file="mock_track.csv", seed=None):
    """
    Generates a GPS track that looks like what a phone reports during a field visit day.
    The device fires roughly every 4 seconds, so most samples land inside the rate limiting
    window and get dropped, and a few samples are wild jumps (bad fixes near tall buildings)
    to exercise the GPS route cleaning.
    """
    rng = np.random.default_rng(seed)

    # Start around Connaught Place, New Delhi
    START_LAT = 28.6139
    START_LNG = 77.2090

    # 1. Heading drifts slowly, speed is a scooter in city traffic (~15-40 km/h)
    headings = np.cumsum(rng.normal(0.0, 0.25, num_samples)) + rng.uniform(0, 2 * np.pi)
    speeds_mps = rng.uniform(4.0, 11.0, num_samples)
    gaps_s = rng.integers(2, 7, num_samples)
    gaps_s[0] = 0

    # 2. Integrate steps, ~111 km per degree of latitude
    step_m = speeds_mps * gaps_s
    d_lat = (step_m * np.cos(headings)) / 111_320.0
    d_lng = (step_m * np.sin(headings)) / (111_320.0 * np.cos(np.radians(START_LAT)))
    lats = START_LAT + np.cumsum(d_lat)
    lngs = START_LNG + np.cumsum(d_lng)

    # 3. Sprinkle a few bad fixes (~1 km off) to make the cleaning step work for its living
    outliers = rng.choice(np.arange(5, num_samples), size=max(1, num_samples // 60), replace=False)
    lats[outliers] += rng.choice([-1, 1], size=len(outliers)) * 0.01

    accuracies = np.round(rng.gamma(2.0, 6.0, num_samples), 1)
    accuracies[outliers] = np.round(rng.uniform(80, 250, len(outliers)), 1)

    start = datetime.now(timezone.utc).replace(microsecond=0)
    offsets = np.cumsum(gaps_s)

    data = []
    for index in range(num_samples):
        data.append({
            "employee_id": employee_id,
            "timestamp": (start + timedelta(seconds=int(offsets[index]))).isoformat(),
            "lat": np.round(lats[index], 6),
            "lng": np.round(lngs[index], 6),
            "accuracy": accuracies[index],
        })

    # 4. Save to CSV
    df = pd.DataFrame(data)
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_samples} GPS samples for {employee_id} and saved to '{output_file}'")

    # Quick look at what the rate limiter will see
    print("\nSample spacing (seconds):")
    print(f"  median gap: {np.median(gaps_s[1:]):.0f}s, total span: {int(offsets[-1])}s")
    print(f"  injected outliers: {len(outliers)}")
    return df


if __name__ == "__main__":
    generate_mock_track(num_samples=240, employee_id="emp-001")
