#!/usr/bin/env python3

"""
Brand Insights - run the full pipeline for one brand and write a session.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pulse_engine.config import Settings
from pulse_engine.models import BrandInsights
from pulse_engine.pipeline import build_default_pipeline
from scripts.session_manager import SessionManager

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "topic", "total", "positive", "neutral", "negative", "positive_pct",
    "high_intensity", "medium_intensity", "low_intensity", "sample_mention_ids",
]


def topic_summaries_frame(insights: BrandInsights) -> pd.DataFrame:
    """Flatten topic summaries into one row per topic."""
    rows = [
        {
            "topic": s.topic,
            "total": s.total,
            "positive": s.positive,
            "neutral": s.neutral,
            "negative": s.negative,
            "positive_pct": s.positive_pct,
            "high_intensity": s.intensity_breakdown.high,
            "medium_intensity": s.intensity_breakdown.medium,
            "low_intensity": s.intensity_breakdown.low,
            "sample_mention_ids": ";".join(s.sample_mention_ids),
        }
        for s in insights.topic_summaries
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def generate_insights_report(insights: BrandInsights, df: pd.DataFrame, timestamp: str) -> str:
    """Plain-text report of one run."""
    report_lines = [
        "=" * 80,
        f"BRAND INSIGHTS REPORT - {insights.brand} - {timestamp}",
        "=" * 80,
        "",
        "📊 OVERVIEW:",
        f"  • Mentions analyzed: {len(insights.annotations):,} of {len(insights.mentions):,} fetched",
        f"  • Brand voice samples: {len(insights.brand_voice_samples)}",
        f"  • General sentiment: {insights.general_sentiment.score}/100 ({insights.general_sentiment.label})",
        f"  • Topics: {len(df)}",
        "",
        "📈 TOP TOPICS:",
    ]

    for _, row in df.head(10).iterrows():
        report_lines.append(
            f"  • {row['topic']}: {row['total']} mentions, {row['positive_pct']}% positive "
            f"(+{row['positive']} / ={row['neutral']} / -{row['negative']}, {row['high_intensity']} high intensity)"
        )

    if not df.empty:
        hot = df[df["positive_pct"] < 40].sort_values("negative", ascending=False)
        if not hot.empty:
            report_lines.extend(["", "🔥 NEEDS ATTENTION:"])
            for _, row in hot.head(5).iterrows():
                report_lines.append(f"  • {row['topic']} - {row['negative']} negative mentions")

    if insights.suggestions:
        report_lines.extend(["", "💡 SUGGESTIONS:"])
        for s in insights.suggestions:
            report_lines.append(f"  • [{s.priority.upper()}] {s.title} ({s.topic}, {s.tone})")
            report_lines.append(f"    {s.rationale}")
            report_lines.append(f"    ✍️ {s.suggested_copy}")

    if insights.actionable_steps:
        report_lines.extend(["", "🧭 PLAYBOOKS:"])
        for topic, playbook in insights.actionable_steps.items():
            report_lines.append(f"  • {topic}: {playbook}")

    if insights.generated_ad_ideas or insights.pending_video_ads:
        report_lines.extend(["", "🎨 CREATIVES:"])
        for ad in insights.generated_ad_ideas:
            report_lines.append(f"  • {ad.id} [{ad.objective}] {ad.headline} → {ad.generated_media_url}")
        for ad in insights.pending_video_ads:
            report_lines.append(f"  • {ad.id} [{ad.objective}] {ad.headline} → video job {ad.video_job_id} ({ad.video_status})")

    report_lines.extend([
        "",
        f"Report generated at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "=" * 80,
    ])
    return "\n".join(report_lines)


def write_session_outputs(insights: BrandInsights, session_dir: Path, timestamp: str) -> Dict[str, Path]:
    """Write raw JSON, topic CSV and text report into a session directory."""
    raw_file = session_dir / "raw_data" / f"insights_{timestamp}.json"
    analysis_file = session_dir / "analysis" / f"topic_summaries_{timestamp}.csv"
    report_file = session_dir / "reports" / f"insights_report_{timestamp}.txt"

    raw_file.write_text(insights.model_dump_json(indent=2), encoding="utf-8")

    df = topic_summaries_frame(insights)
    df.to_csv(analysis_file, index=False)

    with open(report_file, 'w', encoding='utf-8') as f:
        f.write(generate_insights_report(insights, df, timestamp))

    return {"raw": raw_file, "analysis": analysis_file, "report": report_file}


def main(argv=None):
    """Main execution function."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    parser = argparse.ArgumentParser(description="Analyze brand mentions and generate suggestions and creatives")
    parser.add_argument("--brand", required=True, help="Brand handle, without @")
    parser.add_argument("--format", choices=["single_image", "video"], help="Ad creative format (default: PULSE_AD_FORMAT)")
    parser.add_argument("--no-creatives", action="store_true", help="Skip ad idea and media generation")
    parser.add_argument("--wait-for-video", action="store_true", help="Block until video creatives finish rendering")
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        session_manager = SessionManager(settings.data_dir)
        session_name, session_dir = session_manager.create_new_session(args.brand)
        logger.info(f"🚀 Starting brand insights – {session_name}")

        pipeline = build_default_pipeline(settings)
        insights = asyncio.run(
            pipeline.run(
                args.brand,
                generate_creatives=not args.no_creatives,
                ad_format=args.format,
                wait_for_video=True if args.wait_for_video else None,
            )
        )

        timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
        paths = write_session_outputs(insights, session_dir, timestamp)
        for kind, path in paths.items():
            logger.info(f"✅ {kind}: {path}")

        logger.info(f"🎉 Session complete: {session_dir}")

    except Exception as exc:
        logger.error(f"❌ Fatal error: {exc}")
        raise


if __name__ == "__main__":
    main()
