# Run all tests script
# tests/run_pipeline_tests.py
"""
Script to run the bike-share pipeline test suites one by one with a summary.
"""

import subprocess
import sys
from pathlib import Path


TEST_SUITES = [
    ("Configuration", "tests/unit/test_settings.py"),
    ("Exceptions", "tests/unit/test_exceptions.py"),
    ("Logging", "tests/unit/test_logger.py"),
    ("Trip Records", "tests/unit/test_trip_record.py"),
    ("Data Source", "tests/unit/test_data_source.py"),
    ("File Extractor", "tests/unit/test_file_extractor.py"),
    ("Batch Reader", "tests/unit/test_batch_reader.py"),
    ("Merger", "tests/unit/test_merger.py"),
    ("Feature Deriver", "tests/unit/test_feature_deriver.py"),
    ("Aggregator", "tests/unit/test_aggregator.py"),
    ("Table Writer", "tests/unit/test_table_writer.py"),
    ("Pipeline", "tests/unit/test_analysis_pipeline.py"),
    ("Command Line", "tests/unit/test_run_pipeline.py"),
]


def run_test_suite():
    """Run every test module and report per-suite results."""

    print("🚲 Bike-Share Rider Analysis Test Suite")
    print("=" * 50)

    results = []

    for test_name, test_file in TEST_SUITES:
        print(f"\n🔍 Running: {test_name}")
        print(f"File: {test_file}")
        print("-" * 40)

        try:
            result = subprocess.run(
                [sys.executable, "-m", "pytest", test_file, "-v"],
                capture_output=True,
                text=True,
                cwd=Path(__file__).parent.parent
            )
        except OSError as e:
            print(f"💥 {test_name} - ERROR: {e}")
            results.append((test_name, False, str(e)))
            continue

        if result.returncode == 0:
            print(f"✅ {test_name} - ALL PASSED")
            results.append((test_name, True, ""))
        else:
            print(f"❌ {test_name} - SOME FAILED")
            results.append((test_name, False, result.stdout + result.stderr))

    print("\n" + "=" * 50)
    print("📊 TEST SUMMARY")
    print("=" * 50)

    passed = sum(1 for _, success, _ in results if success)
    total = len(results)

    for test_name, success, error in results:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"{status} - {test_name}")
        if not success and error:
            print(f"   Error: {error[-300:]}")

    print(f"\nResults: {passed}/{total} test suites passed")

    if passed == total:
        print("\n🎉 ALL PIPELINE TESTS PASSED!")
        return True

    print(f"\n❌ {total - passed} test suite(s) failed")
    return False


if __name__ == "__main__":
    success = run_test_suite()
    sys.exit(0 if success else 1)
