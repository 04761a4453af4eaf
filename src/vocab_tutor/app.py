"""Interactive CLI application."""
import logging
import random
import time
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from vocab_tutor.db import (
    DEFAULT_DB_PATH, add_item, get_items, get_sessions, init_db, load_test_settings,
    save_item, save_session,
)
from vocab_tutor.models import (
    Answer, DifficultyTier, MatchingQuestion, MultipleChoiceQuestion, TestFilters,
    TrueFalseQuestion, TypingQuestion,
)
from vocab_tutor.orchestrator import (
    build_session, complete_session, find_urgent_review_items, grade_answer,
    suggest_next_test_parameters,
)
from vocab_tutor.sm2 import due_items, review_item
from vocab_tutor.stats import progress_stats

console = Console()

EXIT_WORDS = ("q", "menu")
RATINGS = [str(i) for i in range(6)]


class SessionExitRequested(Exception):
    """Raised when the learner leaves a test early."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = Prompt.ask(prompt, choices=choices + list(EXIT_WORDS))
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return int(answer)


def show_welcome():
    console.print(Panel(
        "[bold]Vocabulary Tutor[/bold]\n[dim]Spaced repetition and self-tests[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("add", "Add a word"),
        ("words", "List words and next review"),
        ("review", "Review due words and rate yourself"),
        ("test", "Take a test"),
        ("urgent", "Words needing urgent review"),
        ("suggest", "Recommended next test"),
        ("stats", "Progress summary"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def ask_question(question, number: int, total: int):
    """Render one question and return the learner's raw answer."""
    if isinstance(question, MultipleChoiceQuestion):
        console.print(f"[bold]Q{number}/{total}.[/bold] {question.prompt}\n")
        for i, option in enumerate(question.options, 1):
            console.print(f"  [cyan]{i})[/cyan] {option}")
        choice = session_int_prompt("\nYour answer", [str(i) for i in range(1, len(question.options) + 1)])
        return question.options[choice - 1]
    elif isinstance(question, TypingQuestion):
        console.print(f"[bold]Q{number}/{total}.[/bold] {question.prompt}\n")
        return session_prompt("Your answer")
    elif isinstance(question, TrueFalseQuestion):
        console.print(f"[bold]Q{number}/{total}.[/bold] True or false? {question.prompt}\n")
        return session_prompt("Your answer", choices=["true", "false"] + list(EXIT_WORDS))
    elif isinstance(question, MatchingQuestion):
        console.print(f"[bold]Q{number}/{total}.[/bold] Match each word with its meaning\n")
        for i, meaning in enumerate(question.meanings, 1):
            console.print(f"  [cyan]{i})[/cyan] {meaning}")
        choices = [str(i) for i in range(1, len(question.meanings) + 1)]
        return {
            term: question.meanings[session_int_prompt(f"  {term}", choices) - 1]
            for term in question.terms
        }
    raise TypeError(f"Unknown question: {question!r}")


def show_answer_feedback(question, submitted, reveal: bool) -> None:
    if grade_answer(question, submitted):
        console.print("[green]Correct![/green]\n")
        return
    console.print("[red]Incorrect.[/red]")
    if reveal:
        if isinstance(question, MatchingQuestion):
            for term, meaning in question.correct_answer.items():
                console.print(f"  [green]{term}[/green] = {meaning}")
        else:
            console.print(f"Answer: [green]{question.correct_answer}[/green]")
    console.print()


def run_review_session(db_path: str, items: list) -> list:
    """Show each due word, reveal its meaning and reschedule from the learner's rating.

    Returns the reviewed items. Leaving early keeps the ratings given so far.
    """
    if not items:
        console.print("[yellow]No words due right now![/yellow]")
        return []
    reviewed = []
    console.print(f"\n[bold]Review[/bold]: {len(items)} words\n")
    try:
        for i, item in enumerate(items, 1):
            console.print(Panel(item.term, title=f"Word {i}/{len(items)}", border_style="cyan"))
            session_prompt("[dim]Press Enter to reveal the meaning[/dim]", default="")
            console.print(Panel(item.meaning + (f"\n[dim]{item.note}[/dim]" if item.note else ""), border_style="green"))
            rating = session_int_prompt("Rate yourself (0=forgot, 3=hard, 4=good, 5=easy)", RATINGS)
            updated = review_item(item, rating, datetime.now())
            save_item(db_path, updated)
            reviewed.append(updated)
            console.print(f"[dim]Next review in {updated.schedule.interval_days} day(s)[/dim]\n")
    except SessionExitRequested:
        console.print("[dim]Review stopped early.[/dim]")
    return reviewed


def run_test_session(db_path: str, session, items: list) -> list[Answer]:
    """Ask every question, then complete the session and store the results.

    Leaving early still completes the session with the answers given so far.
    """
    if not session.questions:
        console.print("[yellow]Not enough words for a test![/yellow]")
        return []
    settings = session.settings
    answers = []
    total = len(session.questions)
    console.print(f"\n[bold]Test[/bold]: {total} questions\n")
    try:
        for number, question in enumerate(session.questions, 1):
            started = time.monotonic()
            submitted = ask_question(question, number, total)
            spent = round(time.monotonic() - started, 1)
            answers.append(Answer(question.id, submitted, spent))
            if settings.instant_feedback:
                show_answer_feedback(question, submitted, settings.show_correct_answer)
    except SessionExitRequested:
        console.print("[dim]Test stopped early.[/dim]")
    updated = complete_session(session, answers, items, datetime.now())
    for item in updated.values():
        save_item(db_path, item)
    save_session(db_path, session)
    results = session.results
    console.print(
        f"[bold]Score: {results.correct_answers}/{results.total_questions} "
        f"({results.percentage:.0f}%)[/bold]  [dim]avg {results.average_time_per_question}s per question[/dim]\n"
    )
    return answers


def cmd_add(db_path: str):
    term = Prompt.ask("Word")
    meaning = Prompt.ask("Meaning")
    category = Prompt.ask("Category", default="")
    difficulty = Prompt.ask("Difficulty", choices=[d.value for d in DifficultyTier], default="medium")
    note = Prompt.ask("Note", default="")
    item = add_item(db_path, term, meaning, datetime.now(), note=note, category=category, difficulty=difficulty)
    console.print(f"[green]Added {item.term} (#{item.id})[/green]")


def cmd_words(db_path: str):
    items = get_items(db_path)
    if not items:
        console.print("[yellow]No words yet. Use 'add' first.[/yellow]")
        return
    table = Table(title="Vocabulary")
    table.add_column("#", justify="right")
    table.add_column("Word", style="cyan")
    table.add_column("Meaning")
    table.add_column("Difficulty")
    table.add_column("Interval", justify="right")
    table.add_column("Next review")
    for item in items:
        next_review = item.schedule.next_review_at
        table.add_row(
            str(item.id), item.term, item.meaning, item.difficulty.value,
            f"{item.schedule.interval_days}d",
            next_review.strftime("%Y-%m-%d") if next_review else "now",
        )
    console.print(table)


def cmd_test(db_path: str):
    items = get_items(db_path)
    settings = load_test_settings(db_path)
    mode = Prompt.ask("Test words", choices=["due", "all"], default="due")
    pool = due_items(items, datetime.now()) if mode == "due" else items
    filters = TestFilters()
    categories = sorted({i.category for i in pool if i.category})
    if categories:
        picked = Prompt.ask(f"Categories (comma separated, blank for all) {categories}", default="")
        filters.categories = [c.strip() for c in picked.split(",") if c.strip()]
    session = build_session(pool, filters, settings, random.Random(), datetime.now())
    run_test_session(db_path, session, items)


def cmd_review(db_path: str):
    run_review_session(db_path, due_items(get_items(db_path), datetime.now()))


def cmd_stats(db_path: str):
    stats = progress_stats(get_items(db_path), get_sessions(db_path), datetime.now())
    console.print(Panel(
        f"Words: [bold]{stats['total_words']}[/bold]  |  Mastered: [bold]{stats['mastered_words']}[/bold]  |  "
        f"Due: [bold]{stats['words_due']}[/bold]  |  Progress: [bold]{stats['progress']:.0f}%[/bold]\n"
        f"Tests: [bold]{stats['completed_tests']}/{stats['total_tests']}[/bold] completed  |  "
        f"Avg: [bold]{stats['average_score']}%[/bold]  |  Best: [bold]{stats['best_score']:.0f}%[/bold]",
        title="Progress", border_style="blue",
    ))


def cmd_urgent(db_path: str):
    urgent = find_urgent_review_items(get_sessions(db_path), get_items(db_path), datetime.now())
    if not urgent:
        console.print("[green]Nothing needs urgent review. Keep up the good work.[/green]")
        return
    table = Table(title="Urgent Review")
    table.add_column("Word", style="cyan")
    table.add_column("Meaning")
    table.add_column("Correct", justify="right")
    table.add_column("Wrong", justify="right")
    for item in urgent:
        table.add_row(item.term, item.meaning, str(item.correct_count), str(item.incorrect_count))
    console.print(table)


def cmd_suggest(db_path: str):
    rec = suggest_next_test_parameters(get_sessions(db_path))
    kind = rec.question_type.value.replace("_", " ") if rec.question_type else "mixed"
    tiers = ", ".join(d.value for d in rec.difficulties)
    console.print(Panel(
        f"[bold]{kind}[/bold] test, {rec.settings.question_count} questions, "
        f"{rec.settings.time_limit // 60} minutes\nDifficulty: {tiers}\n[dim]{rec.reason}[/dim]",
        title="Suggested Test", border_style="cyan",
    ))


def main():
    logging.basicConfig(
        level=logging.WARNING, format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    db_path = DEFAULT_DB_PATH
    init_db(db_path)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="test").strip().lower()
        try:
            if choice == "add":
                cmd_add(db_path)
            elif choice == "words":
                cmd_words(db_path)
            elif choice == "review":
                cmd_review(db_path)
            elif choice == "test":
                cmd_test(db_path)
            elif choice == "urgent":
                cmd_urgent(db_path)
            elif choice == "suggest":
                cmd_suggest(db_path)
            elif choice == "stats":
                cmd_stats(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you at the next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
