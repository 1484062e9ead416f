#!/usr/bin/env python3
"""
Verification script for InverseSeabed package.

Checks that all modules can be imported and basic functionality works.
"""

import sys


def check_imports():
    """Check that all modules import successfully."""
    print("Checking imports...")

    try:
        import inverse_seabed
        print("✓ Main package imported")

        import inverse_seabed.propagation
        print("✓ Propagation module imported")

        import inverse_seabed.inference
        print("✓ Inference module imported")

        import inverse_seabed.validation
        print("✓ Validation module imported")

        import inverse_seabed.tools as tl
        print("✓ Tools module imported")

        return True
    except ImportError as e:
        print(f"✗ Import failed: {e}")
        return False


def check_forward_model():
    """Check the forward model on one receiver."""
    print("\nChecking forward model...")

    try:
        from inverse_seabed import transmission_loss

        tl = transmission_loss(100.0, 10.0, 5000.0, 1.5, 1.2, 0.001)
        print(f"  ✓ Transmission loss at 10 m / 5 kHz: {tl:.2f} dB")

        return True
    except Exception as e:
        print(f"  ✗ Forward model check failed: {e}")
        return False


def check_synthetic_data():
    """Check synthetic data generation."""
    print("\nChecking synthetic data...")

    try:
        from inverse_seabed.validation import generate_synthetic_data

        data = generate_synthetic_data(
            depths=[10.0, 15.0],
            frequencies=[5000.0, 6000.0, 7000.0],
        )
        assert len(data) == 6
        print(f"  ✓ Generated {len(data)} measurements")

        return True
    except Exception as e:
        print(f"  ✗ Synthetic data check failed: {e}")
        return False


def check_inference_model():
    """Check the probabilistic model and guide."""
    print("\nChecking inference model...")

    try:
        from inverse_seabed.inference import InversionProblem, MeanFieldGuide
        from inverse_seabed.validation import generate_synthetic_data

        data = generate_synthetic_data(depths=[10.0, 15.0], frequencies=[5000.0])
        problem = InversionProblem.from_dataset(data)
        print(f"  ✓ Log density at truth: {problem.log_density(1.5, 1.2, 0.001):.2f}")

        guide = MeanFieldGuide()
        print(f"  ✓ Guide created: {guide.posterior()}")

        return True
    except Exception as e:
        print(f"  ✗ Inference model check failed: {e}")
        return False


def check_file_structure():
    """Check that key files exist."""
    print("\nChecking file structure...")

    import os

    required_files = [
        'README.md',
        'setup.py',
        'inverse_seabed/__init__.py',
        'inverse_seabed/propagation/__init__.py',
        'inverse_seabed/inference/__init__.py',
        'inverse_seabed/tools/__init__.py',
        'inverse_seabed/validation/__init__.py',
        'tests/test_basic.py',
        'examples/basic_usage.py',
        'examples/pekeris_inversion.py',
    ]

    all_exist = True
    for file in required_files:
        if os.path.exists(file):
            print(f"  ✓ {file}")
        else:
            print(f"  ✗ {file} missing")
            all_exist = False

    return all_exist


def main():
    """Run all verification checks."""
    print("="*60)
    print("InverseSeabed Package Verification")
    print("="*60)

    results = []

    results.append(("Imports", check_imports()))
    results.append(("Forward Model", check_forward_model()))
    results.append(("Synthetic Data", check_synthetic_data()))
    results.append(("Inference Model", check_inference_model()))
    results.append(("File Structure", check_file_structure()))

    # Summary
    print("\n" + "="*60)
    print("VERIFICATION SUMMARY")
    print("="*60)

    for check_name, passed in results:
        status = "PASS" if passed else "FAIL"
        symbol = "✓" if passed else "✗"
        print(f"{symbol} {check_name}: {status}")

    all_passed = all(result[1] for result in results)

    if all_passed:
        print("\n✓ All checks passed! Package is ready to use.")
        return 0
    else:
        print("\n✗ Some checks failed. Please check the output above.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
