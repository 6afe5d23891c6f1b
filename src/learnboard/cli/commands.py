"""CLI commands for learnboard.

Commands:
- init-db: Create the database schema
- enroll: Create or update an enrollment
- enrollments / courses / stats: Read a student's enrollment state
- performance: Aggregate quiz attempts
- leaderboard: Rank students globally or within a class
- serve: Run the Web API
"""

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.table import Table

from learnboard.core import enrollment_manager, leaderboard as leaderboard_ranker
from learnboard.core.errors import ConflictError, LearnboardError, NotFoundError
from learnboard.core.models import EnrollmentStatus, QuizPerformanceFilter
from learnboard.core.performance_aggregator import aggregate
from learnboard.db.database import get_db_path, init_db

app = typer.Typer(
    name="learnboard",
    help="Enrollment state and quiz performance for the learning platform.",
    no_args_is_help=True,
)

console = Console()

_STATUS_COLORS = {
    EnrollmentStatus.NOT_ENROLLED: "dim",
    EnrollmentStatus.ENROLLED: "cyan",
    EnrollmentStatus.COMPLETED: "green",
}


def _fail(error: LearnboardError) -> NoReturn:
    """Print an engine error and exit with code 1."""
    if isinstance(error, (NotFoundError, ConflictError)):
        console.print(f"[yellow]⚠ {error}[/yellow]")
    else:
        console.print(f"[red]✗ {error}[/red]")
    raise typer.Exit(code=1)


def _status_text(status: EnrollmentStatus) -> str:
    color = _STATUS_COLORS[status]
    return f"[{color}]{status.value}[/{color}]"


# =============================================================================
# DATABASE
# =============================================================================


@app.command(name="init-db")
def init_database(
    db: str | None = typer.Option(None, "--db", help="Database file (default: config)"),
) -> None:
    """Create the database schema if it does not exist."""
    init_db(Path(db) if db else None)
    console.print("[green]✓ Database ready[/green]")
    console.print(f"  [dim]path:[/dim] {get_db_path()}")


# =============================================================================
# ENROLLMENTS
# =============================================================================


@app.command()
def enroll(
    student_id: str = typer.Argument(..., help="Student ID"),
    course_id: str = typer.Argument(..., help="Course ID"),
    status: str = typer.Option(
        "enrolled", "--status", "-s", help="Status: not_enrolled, enrolled, completed"
    ),
    progress: int | None = typer.Option(
        None, "--progress", "-p", help="Progress percentage (0-100)"
    ),
) -> None:
    """Create or update a student's enrollment in a course."""
    init_db()
    try:
        enrollment = enrollment_manager.update_enrollment_status(
            student_id, course_id, status, progress_percentage=progress
        )
    except LearnboardError as e:
        _fail(e)

    console.print("[green]✓ Enrollment saved[/green]")
    console.print(f"  [dim]student:[/dim]  {enrollment.student_id}")
    console.print(f"  [dim]course:[/dim]   {enrollment.course_id}")
    console.print(f"  [dim]status:[/dim]   {_status_text(enrollment.status)}")
    console.print(f"  [dim]progress:[/dim] {enrollment.progress_percentage}%")


@app.command()
def enrollments(
    student_id: str = typer.Argument(..., help="Student ID"),
) -> None:
    """List a student's enrollments."""
    init_db()
    try:
        rows = enrollment_manager.get_student_enrollments(student_id)
    except LearnboardError as e:
        _fail(e)

    if not rows:
        console.print(f"[yellow]No enrollments for {student_id}[/yellow]")
        console.print("  Use: learnboard enroll <student_id> <course_id>")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Course", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Progress", justify="right")
    table.add_column("Updated")

    for e in rows:
        name = e.course.name if e.course else e.course_id
        table.add_row(name, _status_text(e.status), f"{e.progress_percentage}%", e.updated_at)

    console.print(f"\n[bold]Enrollments ({len(rows)}):[/bold]")
    console.print(table)


@app.command()
def courses(
    student_id: str = typer.Argument(..., help="Student ID"),
) -> None:
    """List every active course with the student's enrollment state."""
    init_db()
    try:
        views = enrollment_manager.get_all_courses_with_enrollment_status(student_id)
    except LearnboardError as e:
        _fail(e)

    if not views:
        console.print("[yellow]No active courses[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Code", style="cyan")
    table.add_column("Course")
    table.add_column("Status", justify="center")
    table.add_column("Progress", justify="right")

    for v in views:
        table.add_row(
            v.course.code,
            v.course.name,
            _status_text(v.enrollment_status),
            f"{v.progress_percentage}%",
        )

    console.print(table)


@app.command()
def stats(
    student_id: str = typer.Argument(..., help="Student ID"),
) -> None:
    """Show a student's enrollment counts."""
    init_db()
    try:
        result = enrollment_manager.get_enrollment_stats(student_id)
    except LearnboardError as e:
        _fail(e)

    console.print(f"\n[bold]{student_id}[/bold]")
    console.print(f"  [dim]total:[/dim]        {result.total}")
    console.print(f"  [dim]enrolled:[/dim]     {result.enrolled}")
    console.print(f"  [dim]completed:[/dim]    {result.completed}")
    console.print(f"  [dim]not_enrolled:[/dim] {result.not_enrolled}")


# =============================================================================
# QUIZ PERFORMANCE
# =============================================================================


@app.command()
def performance(
    school_id: str | None = typer.Option(None, "--school", help="School ID"),
    class_id: str | None = typer.Option(None, "--class", help="Class ID"),
    course_id: str | None = typer.Option(None, "--course", help="Course ID"),
    course_level_id: str | None = typer.Option(None, "--level", help="Course level ID"),
    topic_id: str | None = typer.Option(None, "--topic", help="Topic ID"),
    quiz_id: str | None = typer.Option(None, "--quiz", help="Quiz ID"),
    date_from: str | None = typer.Option(None, "--from", help="Completed on/after (ISO date)"),
    date_to: str | None = typer.Option(None, "--to", help="Completed on/before (ISO date)"),
    status: str = typer.Option(
        "all", "--status", "-s", help="Status: all, passed, failed, in_progress"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full response as JSON"),
) -> None:
    """Aggregate quiz attempts matching the filters."""
    init_db()
    try:
        performance_filter = QuizPerformanceFilter(
            school_id=school_id,
            class_id=class_id,
            course_id=course_id,
            course_level_id=course_level_id,
            topic_id=topic_id,
            quiz_id=quiz_id,
            date_from=date_from,
            date_to=date_to,
            status=status,
        )
        response = aggregate(performance_filter)
    except LearnboardError as e:
        _fail(e)

    if as_json:
        console.print_json(data=response.to_dict())
        return

    s = response.stats
    console.print("\n[bold]Quiz performance[/bold]")
    console.print(
        f"  Attempts: {s.total_attempts} | Completed: {s.completed_attempts} | "
        f"Passed: {s.passed_attempts} | Failed: {s.failed_attempts}"
    )
    console.print(
        f"  Avg score: {s.average_score:.2f} | Avg %: {s.average_percentage:.2f} | "
        f"Students: {s.total_students} | Quizzes: {s.unique_quizzes}"
    )
    bands = ", ".join(f"{k}={v}" for k, v in s.score_categories.items())
    console.print(f"  [dim]bands:[/dim] {bands}")

    if not response.quiz_data:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Quiz", style="cyan")
    table.add_column("Attempts", justify="right")
    table.add_column("Avg %", justify="right")
    table.add_column("Pass rate", justify="right")
    table.add_column("Students", justify="right")

    for q in response.quiz_data:
        table.add_row(
            q.quiz_title,
            str(q.total_attempts),
            f"{q.average_percentage:.2f}",
            f"{q.pass_rate:.2f}%",
            str(q.total_students),
        )

    console.print(table)


@app.command()
def leaderboard(
    class_id: str | None = typer.Option(None, "--class", help="Rank within one class"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Number of rows"),
) -> None:
    """Show the global or class leaderboard."""
    init_db()
    try:
        if class_id:
            board = leaderboard_ranker.get_class_leaderboard(class_id, limit=limit)
        else:
            board = leaderboard_ranker.get_leaderboard(limit=limit)
    except LearnboardError as e:
        _fail(e)

    if not board:
        console.print("[yellow]No completed attempts yet[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Student", style="cyan")
    table.add_column("Points", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Completed", justify="right")
    table.add_column("Passed", justify="right")

    for entry in board:
        name = f"{entry.student.first_name} {entry.student.last_name}".strip()
        table.add_row(
            str(entry.rank),
            name or entry.student.username or entry.student.id,
            f"{entry.total_points:g}",
            f"{entry.average_score:.2f}",
            str(entry.quizzes_completed),
            str(entry.quizzes_passed),
        )

    scope = f"class {class_id}" if class_id else "global"
    console.print(f"\n[bold]Leaderboard ({scope})[/bold]")
    console.print(table)


# =============================================================================
# WEB API
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Port"),
) -> None:
    """Run the Web API with uvicorn."""
    import uvicorn

    uvicorn.run("learnboard.web.api:app", host=host, port=port)


if __name__ == "__main__":
    app()
