#!/usr/bin/env python3

"""
Refresh Scheduler - re-run brand insights on an interval.

One pipeline (and so one annotation cache and suggestion history) is shared
across cycles, so mentions seen in a previous cycle are not re-annotated
until their cache entry expires.
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pulse_engine.config import Settings
from pulse_engine.errors import ConfigurationError
from pulse_engine.models import BrandInsights
from pulse_engine.pipeline import BrandInsightsPipeline, build_default_pipeline
from scripts.brand_insights import write_session_outputs
from scripts.session_manager import SessionManager

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Manages refresh cycles for a set of brands."""

    def __init__(
        self,
        pipeline: BrandInsightsPipeline,
        brands: List[str],
        interval_minutes: int = 30,
        session_manager: Optional[SessionManager] = None,
        generate_creatives: bool = False,
    ):
        self.pipeline = pipeline
        self.brands = brands
        self.interval_minutes = interval_minutes
        self.interval_seconds = interval_minutes * 60
        self.session_manager = session_manager
        self.generate_creatives = generate_creatives
        self.running = False
        self.cycle_count = 0

    def install_signal_handlers(self):
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals gracefully."""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False

    async def run_cycle(self) -> List[BrandInsights]:
        """Run the pipeline once per brand; a failing brand does not stop the others."""
        self.cycle_count += 1
        logger.info(f"🔄 Starting cycle {self.cycle_count} ({len(self.pipeline.cache)} cached annotations)")

        results = []
        for brand in self.brands:
            try:
                insights = await self.pipeline.run(brand, generate_creatives=self.generate_creatives)
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error(f"❌ Cycle {self.cycle_count} failed for {brand}: {e}")
                continue

            results.append(insights)
            self.display_cycle_summary(insights)
            if self.session_manager is not None:
                _, session_dir = self.session_manager.create_new_session(brand)
                write_session_outputs(insights, session_dir, datetime.now().strftime('%Y-%m-%d_%H-%M-%S'))
        return results

    def display_cycle_summary(self, insights: BrandInsights):
        top = insights.topic_summaries[0].topic if insights.topic_summaries else "n/a"
        print(f"\n📊 CYCLE {self.cycle_count} SUMMARY - {insights.brand}")
        print("=" * 50)
        print(f"⏰ Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"💬 Mentions: {len(insights.mentions):,}")
        print(f"🙂 Sentiment: {insights.general_sentiment.score}/100 ({insights.general_sentiment.label})")
        print(f"📈 Topics: {len(insights.topic_summaries)} (top: {top})")
        print(f"💡 Suggestions: {len(insights.suggestions)}")
        print("=" * 50)

    async def run_continuous_monitoring(self):
        self.running = True

        print("🚀 STARTING BRAND REFRESH MONITORING")
        print("=" * 60)
        print(f"🏷️ Brands: {', '.join(self.brands)}")
        print(f"⏰ Interval: {self.interval_minutes} minutes")
        print("🛑 Press Ctrl+C to stop gracefully")
        print("=" * 60)

        try:
            while self.running:
                cycle_start = time.time()
                await self.run_cycle()

                cycle_duration = time.time() - cycle_start
                sleep_time = max(0, self.interval_seconds - cycle_duration)

                if self.running and sleep_time > 0:
                    next_run = datetime.now() + timedelta(seconds=sleep_time)
                    logger.info(f"😴 Cycle {self.cycle_count} completed in {cycle_duration:.1f}s. Next run at {next_run.strftime('%H:%M:%S')}")

                    # Sleep in chunks to allow for graceful shutdown
                    sleep_chunks = int(sleep_time / 10) + 1
                    chunk_size = sleep_time / sleep_chunks
                    for _ in range(sleep_chunks):
                        if not self.running:
                            break
                        await asyncio.sleep(chunk_size)
        finally:
            self.running = False
            print(f"\n🏁 MONITORING STOPPED")
            print(f"📊 Total cycles completed: {self.cycle_count}")
            print("✅ Graceful shutdown complete")


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    parser = argparse.ArgumentParser(description="Periodic brand insights refresh")
    parser.add_argument("--brand", "-b", action="append", required=True, help="Brand to monitor (repeatable)")
    parser.add_argument("--interval", "-i", type=int, default=30, help="Refresh interval in minutes (default: 30)")
    parser.add_argument("--once", action="store_true", help="Run once instead of continuous monitoring")
    parser.add_argument("--with-creatives", action="store_true", help="Also generate ad creatives each cycle")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    scheduler = RefreshScheduler(
        build_default_pipeline(settings),
        args.brand,
        interval_minutes=args.interval,
        session_manager=SessionManager(settings.data_dir),
        generate_creatives=args.with_creatives,
    )

    if args.once:
        print("🚀 Running single refresh cycle...")
        results = asyncio.run(scheduler.run_cycle())
        print(f"✅ Single cycle completed ({len(results)}/{len(args.brand)} brands)")
    else:
        scheduler.install_signal_handlers()
        asyncio.run(scheduler.run_continuous_monitoring())


if __name__ == "__main__":
    main()
