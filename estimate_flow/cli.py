"""
CLI for the estimate questionnaire.

Runs the description -> category matching -> branching questions flow in a
terminal and writes the collected answers as JSON for the estimate step.
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .branching import QuestionFlowEngine
from .catalog import load_catalog
from .config import FlowConfig
from .errors import CatalogError
from .matcher import CategoryMatcher, consolidate
from .schemas.questions import CategoryQuestionSet, Question, answers_to_dict


def print_header():
    """Print CLI header."""
    print("""
╔═══════════════════════════════════════════════════════════════╗
║                                                               ║
║     PROJECT ESTIMATE - Questionnaire                          ║
║                                                               ║
║     Describe your project, answer a few questions             ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """)


def format_question(engine: QuestionFlowEngine, question: Question) -> str:
    """Format a question for display with its numbered options."""
    prompt = f"\n{'='*60}\n"
    prompt += f"{engine.current_set.category} "
    prompt += f"(Stage {engine.current_stage}/{engine.total_stages}, "
    prompt += f"{engine.recompute_progress():.0f}% done)\n"
    prompt += f"{'='*60}\n\n"
    prompt += f"{question.question}\n"

    for i, option in enumerate(question.options, 1):
        prompt += f"  {i}. {option.label}\n"

    if question.is_multiple_choice:
        prompt += "\n(Pick one or more, separated by commas)"
    return prompt


def parse_selection(question: Question, response: str) -> List[str]:
    """Turn '1, 3' or option values into option values."""
    values = []
    for part in response.split(","):
        part = part.strip()
        if not part:
            continue
        if part.isdigit() and 1 <= int(part) <= len(question.options):
            values.append(question.options[int(part) - 1].value)
        else:
            values.append(part)
    return values


def choose_categories(
    catalog: List[CategoryQuestionSet],
    matcher: CategoryMatcher,
    description: str,
    input_fn: Callable[[str], str] = input
) -> List[CategoryQuestionSet]:
    """Match a description, asking the visitor to pick when nothing matched."""
    matched = matcher.score(description, catalog)
    if matched:
        print("\nWe'll ask about: " + ", ".join(qs.category for qs in matched))
        return matched

    print("\nWe couldn't tell which service you need.")
    suggestion = matcher.suggest(description, catalog)
    if suggestion:
        print(f"Did you mean: {suggestion.category}?")

    for i, qs in enumerate(catalog, 1):
        print(f"  {i}. {qs.category}")

    response = input_fn("\nPick a category number: ").strip()
    if not response.isdigit() or not 1 <= int(response) <= len(catalog):
        return []

    picked = catalog[int(response) - 1]
    if matcher.config.fill_default_questions:
        picked = matcher.with_default_questions(picked)
    return [picked]


def save_snapshot(engine: QuestionFlowEngine, output_dir: str) -> str:
    """Save the flow so it can be resumed later."""
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)
    filepath = path / f"flow-{datetime.now().strftime('%Y%m%d%H%M%S')}.json"
    with open(filepath, 'w') as f:
        json.dump(engine.to_dict(), f, indent=2)
    return str(filepath)


def save_answers(engine: QuestionFlowEngine, output_dir: str) -> str:
    """Write the final answers for the estimate generator."""
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)
    filepath = path / f"answers-{datetime.now().strftime('%Y%m%d%H%M%S')}.json"
    with open(filepath, 'w') as f:
        json.dump(answers_to_dict(engine.answers), f, indent=2)
    return str(filepath)


def run_interactive_flow(
    engine: QuestionFlowEngine,
    output_dir: str = "./outputs",
    input_fn: Callable[[str], str] = input
) -> bool:
    """
    Ask questions until the flow completes.

    Returns True when the flow completed, False when paused or quit.
    """
    while not engine.is_complete:
        question = engine.current_question
        print(format_question(engine, question))

        response = input_fn("\nYour answer: ").strip()

        if response.lower() == 'pause':
            filepath = save_snapshot(engine, output_dir)
            print(f"\nProgress saved to: {filepath}")
            print("You can resume later with: --resume <file>")
            return False

        if response.lower() == 'quit':
            return False

        step = engine.submit_answer(question.id, parse_selection(question, response))
        if not step.accepted:
            print(f"Sorry, that didn't work: {step.reason}")
            continue

        if question.is_multiple_choice:
            step = engine.confirm_multiple_choice()
            if not step.accepted:
                print(f"Sorry, that didn't work: {step.reason}")

        for warning in step.warnings:
            print(f"Note: {warning}")

    engine.recompute_progress()
    return True


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Project estimate questionnaire",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a questionnaire with the built-in catalog
  estimate-flow --description "I want to paint my walls"

  # Use a catalog file
  estimate-flow --catalog ./catalog.json

  # Resume a saved questionnaire
  estimate-flow --resume ./outputs/flow-20260205143000.json

  # Only show which categories a description matches
  estimate-flow --description "new kitchen cabinets" --match-only
        """
    )

    parser.add_argument(
        "--description", "-d",
        help="Project description (asked interactively if omitted)"
    )

    parser.add_argument(
        "--catalog", "-c",
        help="Path to a JSON category catalog"
    )

    parser.add_argument(
        "--resume", "-r",
        help="Resume a questionnaire saved with 'pause'"
    )

    parser.add_argument(
        "--output", "-o",
        default="./outputs",
        help="Output directory for saved files (default: ./outputs)"
    )

    parser.add_argument(
        "--match-only",
        action="store_true",
        help="Print the matched categories and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log matching and flow decisions"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    config = FlowConfig.from_env()
    if args.catalog:
        config.catalog_path = args.catalog
        config.catalog_url = None

    print_header()

    if args.resume:
        try:
            with open(args.resume) as f:
                engine = QuestionFlowEngine.from_dict(json.load(f), config=config)
        except (OSError, ValueError, CatalogError) as e:
            print(f"Error: could not resume from '{args.resume}': {e}")
            sys.exit(1)
        print(f"Resuming questionnaire: {args.resume}")
    else:
        try:
            catalog = load_catalog(config)
        except CatalogError as e:
            print(f"Error: {e}")
            sys.exit(1)

        matcher = CategoryMatcher(config)
        description = args.description or input("Describe your project: ").strip()

        if args.match_only:
            ranked = matcher.rank(description, catalog)
            walked = consolidate([m.question_set for m in ranked])
            for match in ranked:
                if not any(match.question_set is qs for qs in walked):
                    continue
                print(f"  {match.category}: priority {match.priority} ({', '.join(match.matched_keywords)})")
            return

        question_sets = choose_categories(catalog, matcher, description)
        if not question_sets:
            print("No category selected.")
            sys.exit(1)

        engine = QuestionFlowEngine(question_sets, config=config)
        engine.start()

    if not run_interactive_flow(engine, args.output):
        return

    answers_file = save_answers(engine, args.output)
    print(f"""
╔═══════════════════════════════════════════════════════════════╗
║                  QUESTIONNAIRE COMPLETE!                      ║
╚═══════════════════════════════════════════════════════════════╝

Answers saved to: {answers_file}
""")


if __name__ == "__main__":
    main()
