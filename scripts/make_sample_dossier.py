#!/usr/bin/env python
from __future__ import annotations

import argparse
from pathlib import Path

from openpyxl import Workbook

SAMPLES: dict[str, tuple[list[str], list[list[object]]]] = {
    "formulation": (
        ["Componente", "Função", "Quantidade (mg)", "Observação"],
        [
            ["Ativo", "Princípio ativo", 250, "solubilidade baixa em pH ácido"],
            ["Lactose", "Excipiente diluente", 120, "avaliar estabilidade"],
            ["Estearato de magnésio", "Excipiente lubrificante", 5, "dissolução"],
        ],
    ),
    "regulatory": (
        ["Requisito", "Referência", "Status"],
        [
            ["Registro de medicamento", "RDC 200/2017 ANVISA", "compliance pendente"],
            ["Boas práticas de fabricação", "RDC 301/2019", "conforme"],
            ["Estabilidade", "ICH Q1A", "em avaliação"],
        ],
    ),
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample client dossier workbook")
    parser.add_argument("--kind", choices=sorted(SAMPLES), default="formulation", help="dossier domain")
    parser.add_argument("--output", required=True, help="output path (.xlsx)")
    args = parser.parse_args()

    header, rows = SAMPLES[args.kind]
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = args.kind
    sheet.append(header)
    for row in rows:
        sheet.append(row)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output)
    print(f"Sample {args.kind} dossier written to {output}")


if __name__ == "__main__":
    main()
