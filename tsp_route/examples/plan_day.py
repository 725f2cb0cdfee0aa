import json

from tsp_route.itinerary import OptimizeRouteTool


def main():
    request = {
        "start_location": {"latitude": 48.8566, "longitude": 2.3522},
        "end_location": {"latitude": 48.8738, "longitude": 2.2950},
        "day_pois": [
            {"id": "louvre", "latitude": 48.8606, "longitude": 2.3376},
            {"id": "notre-dame", "latitude": 48.8530, "longitude": 2.3499},
            {"id": "orsay", "latitude": 48.8600, "longitude": 2.3266},
            {"id": "eiffel", "latitude": 48.8584, "longitude": 2.2945},
            {"id": "pantheon", "latitude": 48.8462, "longitude": 2.3464},
        ],
    }
    result = json.loads(OptimizeRouteTool().run(request))
    print(f"mode={result['mode']} total={result['total_distance']:.4f}")
    for stop in result["route"]:
        print(f"  {stop['role']:<5} {stop['id'] or '-':<12} ({stop['latitude']}, {stop['longitude']})")


if __name__ == "__main__":
    main()
