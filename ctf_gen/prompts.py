from __future__ import annotations

from textwrap import dedent

from .models import FunctionAnalysis, GeneratedTestArtifact

# Unit-test principles and common mistakes fed to the generation step.
UNIT_TEST_PRINCIPLES: list[tuple[str, str]] = [
    ("Write Atomic Tests",
     "Each test covers only one specific functionality, e.g. test deposit independently of withdrawal."),
    ("Focus on Edge Cases",
     "Include boundary conditions such as minimum, maximum and zero values."),
    ("Validate Events Emitted",
     "Check that the correct events are emitted, e.g. `Transfer` when tokens move."),
    ("Use Mock Data for External Calls",
     "Replace external contract calls with mocks to keep tests isolated."),
    ("Ensure Gas Efficiency",
     "Check that loops do not exceed the gas limit for typical inputs."),
    ("Revert Test Cases",
     "Ensure the contract reverts as expected when invalid inputs are provided."),
    ("Clean State Between Tests",
     "Use fixtures or `beforeEach` to deploy a fresh contract instance per test."),
    ("Align Unit Test Logic with Contract Workflow",
     "Follow precondition, process and expected outcome (events and final state)."),
]

COMMON_MISTAKES: list[tuple[str, str]] = [
    ("Uninitialized Variables",
     "Explicitly set initial token balances before running transfer tests."),
    ("Hardcoded Address Values",
     "Use the signers provided by the framework instead of literal addresses."),
    ("Over-reliance on Global State",
     "Do not assume state persists across tests; set it up in each test."),
    ("Ignoring Gas Limits",
     "Test reasonable gas consumption in loops or recursive calls."),
    ("Skipping Revert Testing",
     "Every `require` condition needs a failing-path test."),
    ("Improper Mock Setup",
     "Reset mocks between tests to avoid stale data."),
    ("Event Verification Errors",
     "Verify the emitted event arguments, not only the event name."),
    ("Incorrect Assert Usage",
     "Use the proper matcher (e.g. `expect(x).to.equal(y)`) rather than comparing strings."),
    ("Invalid Library References",
     "Only use classes and methods that exist in the current ethers.js / Hardhat versions."),
]

ARTIFACT_JSON_SHAPE = dedent(
    """
    {
      "imports": ["<one import statement per entry>"],
      "setupCode": "<shared setup: fixtures, beforeEach, deployments>",
      "testCases": "<one describe block containing the it(...) test cases>"
    }
    """
).strip()


def _bullets(items: list[tuple[str, str]]) -> str:
    return "\n".join(f"- **{title}**: {text}" for title, text in items)


# ---- analysis ----

ANALYZE_SYSTEM_PROMPT = (
    "You are a smart contract testing expert. Analyze the given Solidity function "
    "and suggest comprehensive test cases that cover all important scenarios."
)


def prompt_analyze_function(code: str) -> str:
    header = dedent(
        """
        Analyze the following Solidity function and suggest test cases.
        Return ONLY a JSON array of test cases, with no additional text.
        Each test case should have 'type' (either "positive" or "negative") and 'description' fields.

        Example response format:
        [
          {
            "type": "positive",
            "description": "should succeed when valid amount is transferred"
          },
          {
            "type": "negative",
            "description": "should fail when amount exceeds balance"
          }
        ]

        Consider:
        1. Input validation
        2. State changes
        3. Access control
        4. Edge cases
        5. Business logic
        6. Events emission

        Function code:
        """
    ).strip()
    return f"{header}\n{code}\n"


# ---- generation ----

def generate_system_prompt(test_framework: str) -> str:
    return (
        f"You are a senior smart contract engineer writing {test_framework} unit tests "
        "in TypeScript with ethers.js and chai. You answer with a single JSON object only."
    )


def prompt_generate_test(contract_name: str, code: str, analysis: FunctionAnalysis) -> str:
    cases = "\n".join(
        f"{i}. [{tc.kind}] {tc.description}" for i, tc in enumerate(analysis.test_cases, start=1)
    ) or "(no suggestions, derive sensible positive and negative cases yourself)"
    header = dedent(
        f"""
        Write unit tests for the method `{analysis.method_name}` of the contract `{contract_name}`.
        Implement every test case listed below, one `it(...)` per case, inside a
        `describe("{analysis.method_name}", ...)` block.

        ## Output format (MUST be valid JSON)
        Return exactly this JSON object, no markdown and no comments:
        """
    ).strip()
    return "\n\n".join(
        [
            header,
            ARTIFACT_JSON_SHAPE,
            "## Unit test principles\n" + _bullets(UNIT_TEST_PRINCIPLES),
            "## Common mistakes to avoid\n" + _bullets(COMMON_MISTAKES),
            "## Test cases\n" + cases,
            "## Function code\n```solidity\n" + code + "\n```",
        ]
    )


# ---- merge ----

MERGE_SYSTEM_PROMPT = (
    "You are a smart contract testing expert. You merge several generated unit test "
    "fragments for the same contract into one coherent, runnable test file without "
    "losing any test case."
)


def _artifact_blocks(artifacts: list[GeneratedTestArtifact]) -> str:
    blocks = []
    for artifact in artifacts:
        imports = "\n".join(artifact.imports)
        blocks.append(
            f"### Method: {artifact.method_name}\n"
            f"Imports:\n```typescript\n{imports}\n```\n"
            f"Setup:\n```typescript\n{artifact.setup_code}\n```\n"
            f"Tests:\n```typescript\n{artifact.test_body}\n```"
        )
    return "\n\n".join(blocks)


def prompt_merge_tests(contract_name: str, artifacts: list[GeneratedTestArtifact], structured: bool) -> str:
    if structured:
        output_format = (
            "## Output format (MUST be valid JSON)\n"
            "Return one JSON object with the merged file split into:\n" + ARTIFACT_JSON_SHAPE
        )
    else:
        output_format = (
            "## Output format\n"
            "Return only the complete test file source, no explanations."
        )
    header = dedent(
        f"""
        Merge the following test fragments for the contract `{contract_name}` into a single test file.

        Requirements:
        1. Deduplicate the imports.
        2. Produce exactly one setup block that is valid for every test.
        3. Group the test cases by method name, one describe block per method.
        4. Keep every original test case; do not drop or weaken any of them.
        """
    ).strip()
    return "\n\n".join([header, output_format, "## Fragments", _artifact_blocks(artifacts)])


# ---- refactor ----

REFACTOR_SYSTEM_PROMPT = (
    "You are a smart contract testing expert. You refactor test files for readability "
    "without changing what they test."
)


def prompt_refactor_tests(contract_name: str, test_code: str) -> str:
    header = dedent(
        f"""
        Refactor the following test file for the contract `{contract_name}`:
        1. Wrap everything in one top-level describe("{contract_name}") and hoist the shared setup into it.
        2. Remove duplicated test cases and duplicated setup declarations.
        3. Normalise test names to "should ..." phrasing.
        Return only the complete refactored test file, no explanations.
        """
    ).strip()
    return f"{header}\n\n```typescript\n{test_code}\n```"
