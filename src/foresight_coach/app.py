"""Interactive CLI application."""
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from foresight_coach.config import configure_logging, get_settings
from foresight_coach.db import create_user, find_user_by_email, get_user, init_db
from foresight_coach.errors import CoachError
from foresight_coach.journey import (
    calibrate_proficiency, complete_todays_lesson, fetch_todays_lesson, get_dashboard,
    get_learning_plan, make_generator, start_todays_lesson, submit_quiz_answer, update_learning_plan,
    update_learning_preferences,
)
from foresight_coach.models import DESIRED_LEVELS, LANGUAGES, LEARNING_PACES, SKILL_LEVELS, CourseCompleted, User
from foresight_coach.quiz import labelled_options, validate_selection

console = Console()

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user leaves a lesson before finishing it."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    return int(session_prompt(prompt, choices=choices + list(EXIT_WORDS), show_choices=False))


def show_welcome(user: User):
    console.print(Panel(
        f"[bold]Welcome back, {user.name}[/bold]\n[dim]Your daily foresight coach[/dim]",
        title="Foresight Coach", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("lesson", "Today's lesson and quiz"),
        ("dashboard", "Scores, streak and trend"),
        ("plan", "View your learning plan"),
        ("newplan", "Start a new learning plan"),
        ("calibrate", "Set your skill level"),
        ("prefs", "Lesson language and pace"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def login(db_path: str) -> User:
    email = Prompt.ask("Email").strip().lower()
    user = find_user_by_email(db_path, email)
    if user:
        return user
    name = Prompt.ask("New here! Your name")
    user = create_user(db_path, email, name)
    console.print(f"[green]Account created for {user.email}.[/green]")
    return user


def format_wait(next_time) -> str:
    return f"{next_time.hours}h {next_time.minutes}m"


def ask_question(index: int, mcq) -> str:
    console.print(f"\n[bold]Q{index + 1}.[/bold] {mcq.question}\n")
    labelled = labelled_options(mcq)
    for option in labelled:
        console.print(f"  [cyan]{option}[/cyan]")
    letters = [option.split(".", 1)[0].lower() for option in labelled]
    letter = session_prompt("\nYour answer", choices=letters + list(EXIT_WORDS), show_choices=False)
    return labelled[letters.index(letter.lower())]


def show_feedback(mcq, is_correct: bool):
    if is_correct:
        console.print("[green]Correct![/green]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: [green]{mcq.correct_answer}[/green]")
    if mcq.explanation:
        console.print(f"[dim]{mcq.explanation}[/dim]")


def run_quiz(db_path: str, user_id: int, lesson, answered: set[int]) -> None:
    for index, mcq in enumerate(lesson.mcqs):
        if index in answered:
            continue
        completion = submit_quiz_answer(db_path, user_id, index, ask_question(index, mcq))
        show_feedback(mcq, completion.is_correct)


def run_practice(lesson) -> None:
    """Offline lessons are practice only: answers are checked but not recorded."""
    for index, mcq in enumerate(lesson.mcqs):
        show_feedback(mcq, validate_selection(mcq, ask_question(index, mcq)).is_correct)


def show_lesson_body(lesson):
    console.print(Markdown(lesson.content))
    if lesson.practical_exercise:
        console.print(Panel(str(lesson.practical_exercise), title="Practical exercise", border_style="cyan"))
    for takeaway in lesson.key_takeaways:
        console.print(f"  • {takeaway}")


def cmd_lesson(db_path: str, user_id: int, generator):
    result = fetch_todays_lesson(db_path, user_id, generator)
    if isinstance(result, CourseCompleted):
        console.print(f"[green]{result.message}[/green] Use 'newplan' to begin another journey.")
        return
    journey = get_user(db_path, user_id).journey
    console.print(Panel(
        f"Day [bold]{journey.current_day}[/bold] of {journey.total_days}"
        + (" [yellow](offline lesson)[/yellow]" if result.is_fallback else ""),
        title=f"Today's Goal: {result.title}",
    ))
    record = journey.record_for_day(journey.current_day)
    if record is None or result.is_fallback:
        show_lesson_body(result)
    if result.is_fallback:
        run_practice(result)
        console.print(
            "[yellow]Offline lessons are practice only and do not count towards your day.[/yellow] "
            "Run 'lesson' again once lesson generation is available."
        )
        return
    if record is None:
        rating = session_int_prompt("\nRate this lesson (1-5)", choices=["1", "2", "3", "4", "5"])
        record = start_todays_lesson(db_path, user_id, rating)

    run_quiz(db_path, user_id, result, record.answered_indices())
    summary = complete_todays_lesson(db_path, user_id)
    console.print(Panel(
        f"Score: [bold]{summary.score}[/bold] ({summary.percentage}%) - {summary.status}\n"
        f"Streak: [bold]{summary.streak}[/bold] day(s)  |  Total score: {summary.total_score}\n"
        f"Next lesson in {format_wait(summary.next_lesson_time)}",
        title="Lesson complete", border_style="green",
    ))
    if summary.knowledge_gaps:
        console.print(f"[yellow]Keep practising: {', '.join(summary.knowledge_gaps)}[/yellow]")


def cmd_dashboard(db_path: str, user_id: int):
    view = get_dashboard(db_path, user_id)
    console.print(Panel(
        f"[bold]{view.course_name}[/bold]\nDay {view.current_day} of {view.total_days}",
        title="Dashboard", border_style="blue",
    ))
    table = Table()
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Lessons completed", str(view.completed_count))
    table.add_row("Average score", f"{view.average_score}%")
    table.add_row("Rating", f"{view.rating} / 5")
    table.add_row("Trend", view.trend)
    table.add_row("Estimated level", view.estimated_level)
    table.add_row("Streak", f"{view.streak} day(s)")
    table.add_row("Next lesson in", format_wait(view.next_lesson_time))
    console.print(table)


def show_course(course):
    console.print(Panel(
        f"[bold]{course.title}[/bold]\n{course.duration} days - focus: {course.focus_area}",
        title="Your Learning Plan", border_style="blue",
    ))
    for i, objective in enumerate(course.learning_objectives, 1):
        console.print(f"  {i}. {objective}")
    table = Table(title="Phases")
    table.add_column("Days", justify="right")
    table.add_column("Phase")
    table.add_column("Focus")
    for phase in course.daily_structure:
        table.add_row(f"{phase.start_day}-{phase.end_day}", phase.name, phase.focus)
    console.print(table)


def cmd_plan(db_path: str, user_id: int, generator):
    show_course(get_learning_plan(db_path, user_id, generator))


def cmd_newplan(db_path: str, user_id: int, generator):
    focus = Prompt.ask("Focus area", default="strategic_foresight")
    duration = IntPrompt.ask("Duration in days", default=90)
    if Prompt.ask("This resets your progress. Continue?", choices=["y", "n"], default="n") != "y":
        return
    show_course(update_learning_plan(db_path, user_id, generator, focus, duration))


def cmd_calibrate(db_path: str, user_id: int):
    skill = Prompt.ask("Current skill level", choices=list(SKILL_LEVELS), default="beginner")
    desired = Prompt.ask("Desired level", choices=list(DESIRED_LEVELS), default="improve_little")
    calibrate_proficiency(db_path, user_id, skill, desired)
    console.print("[green]Proficiency calibrated.[/green]")


def cmd_prefs(db_path: str, user_id: int):
    current = get_user(db_path, user_id).preferences
    language = Prompt.ask("Lesson language", choices=list(LANGUAGES), default=current.language)
    pace = Prompt.ask("Learning pace", choices=list(LEARNING_PACES), default=current.learning_pace)
    prefs = update_learning_preferences(db_path, user_id, language=language, learning_pace=pace)
    console.print(f"[green]Lessons will be in '{prefs.language}' at a {prefs.learning_pace} pace.[/green]")


def main():
    settings = get_settings()
    configure_logging(settings)
    db_path = settings.db_path
    init_db(db_path)
    generator = make_generator(settings)
    if not settings.mistral_api_key:
        console.print("[dim]No API key set; lessons will use offline content.[/dim]")

    user = login(db_path)
    show_welcome(user)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="lesson").strip().lower()
        try:
            if choice == "lesson":
                cmd_lesson(db_path, user.id, generator)
            elif choice == "dashboard":
                cmd_dashboard(db_path, user.id)
            elif choice == "plan":
                cmd_plan(db_path, user.id, generator)
            elif choice == "newplan":
                cmd_newplan(db_path, user.id, generator)
            elif choice == "calibrate":
                cmd_calibrate(db_path, user.id)
            elif choice == "prefs":
                cmd_prefs(db_path, user.id)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you tomorrow![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Progress saved. Pick up where you left off with 'lesson'.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except CoachError as e:
            console.print(f"[red]{e}[/red]")


if __name__ == "__main__":
    main()
