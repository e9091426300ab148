
import sys
import os
import asyncio

# Add project root to path
sys.path.append(os.getcwd())

try:
    from src.core.entities.filters import FilterState
    from src.core.services import AnalyticsService
    from src.infrastructure.gateways.local_mock import LocalMockDataSource
    from src.api.main import app
    print("✅ All imports successful.")
except Exception as e:
    print(f"❌ Import failed: {e}")
    sys.exit(1)

# Run the whole analytics pipeline over the demo dataset
def check_dashboard():
    try:
        service = AnalyticsService(LocalMockDataSource())
        dashboard = asyncio.run(service.get_dashboard("diagnose", FilterState()))

        if len(dashboard.hourly) == 24 and len(dashboard.sessions) == 3:
            print(f"✅ Dashboard built: {dashboard.trade_count} trades, "
                  f"risk {dashboard.risk_score.overall} ({dashboard.risk_score.label}), "
                  f"{len(dashboard.patterns)} patterns.")
        else:
            print("❌ Dashboard shape is wrong, expected 24 hourly and 3 session buckets")
    except Exception as e:
        print(f"❌ Dashboard raised exception: {e}")

if __name__ == "__main__":
    check_dashboard()
