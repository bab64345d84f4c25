from django.core.management.base import BaseCommand, CommandError

from fiscal.services.transmissao_service import recuperar_processamentos_travados


class Command(BaseCommand):
    help = (
        "Devolve para 'pending' as NF-e presas em 'processing' além do prazo "
        "(NFE_PROCESSANDO_EXPIRA_SEGUNDOS), liberando nova transmissão."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--segundos",
            type=int,
            default=None,
            help="Idade mínima (em segundos) do processamento para ser recuperado.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Apenas lista os documentos, sem alterar o status.",
        )

    def handle(self, *args, **options):
        segundos = options.get("segundos")
        dry_run = options.get("dry_run", False)

        if segundos is not None and segundos < 0:
            raise CommandError("--segundos deve ser >= 0.")

        self.stdout.write(
            self.style.NOTICE(
                f"[recuperar_nfe_processando] Procurando documentos em processamento "
                f"(dry_run={dry_run})"
            )
        )

        ids = recuperar_processamentos_travados(segundos=segundos, dry_run=dry_run)

        for documento_id in ids:
            self.stdout.write(f"  - {documento_id}")

        verbo = "seriam recuperados" if dry_run else "recuperados"
        self.stdout.write(
            self.style.SUCCESS(f"[recuperar_nfe_processando] {len(ids)} documento(s) {verbo}.")
        )
