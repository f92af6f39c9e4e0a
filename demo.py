#!/usr/bin/env python3
"""Quick demo of PII detection and policy decisions."""

from pii_compliance import DetectionEngine, DetectionOptions, PolicyDecisionEngine
from pii_compliance.config.log import configure_logging


def main():
    configure_logging()

    engine = DetectionEngine()
    policies = {
        name: PolicyDecisionEngine.from_profile(name)
        for name in ("permissive", "strict", "gdpr")
    }

    test_cases = [
        "This text contains no personal information.",
        "Contact John Doe at john.doe@example.com or call (555) 123-4567",
        "My SSN is 555-55-5555",
        "Card: 4111 1111 1111 1111, expires soon",
        "Dr. Watson works for Acme Widgets Inc at 221 Baker Street",
        "Login from 192.168.1.1, see https://example.com/profile/42",
    ]

    print("=== PII Detection Demo ===\n")

    options = DetectionOptions(include_context=True)
    for i, text in enumerate(test_cases, 1):
        print(f"Test {i}:")
        print(f"  Text: {text}")

        result = engine.detect(text, options)

        overall = result.overall_confidence.value if result.overall_confidence else "-"
        print(f"  Has PII: {result.has_pii} (overall confidence: {overall})")

        for span in result.spans:
            print(
                f"    - {span.category.value} [{span.start}:{span.end}] "
                f"{span.confidence.value}/{span.risk_level.value} "
                f"{span.metadata.get('context', '')}"
            )

        for suggestion in result.suggestions:
            print(f"  Suggestion: {suggestion}")

        for name, policy in policies.items():
            decisions = policy.evaluate_result(result, "log")
            denied = [c.value for c, d in decisions.items() if not d.allowed]
            if denied:
                print(f"  [{name}] logging denied for: {', '.join(denied)}")
        print()

    print("=== Policy Check ===")
    gdpr = policies["gdpr"]
    denied = gdpr.evaluate("email", "transfer")
    print("Transfer email without consent:", denied.reason)
    print("  needs one of:", ", ".join(denied.metadata["requires_context"]))
    print(
        "Transfer email with consent:",
        gdpr.evaluate("email", "transfer", {"consent": True}).allowed,
    )
    report = policies["strict"].validate_compliance(
        "payment_card", ["store", "log", "transfer"]
    )
    print(f"Strict payment_card compliant: {report.is_compliant}")
    for violation in report.violations:
        print(f"  - {violation}")


if __name__ == "__main__":
    main()
