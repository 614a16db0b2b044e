from fastapi import FastAPI
from pydantic import BaseModel, ConfigDict
from typing import List, Literal
from models import Value, ApiErr
from errors import LoxError, ParseError
from lexer import Lexer
from evaluator import Evaluator
import httpx, os, uuid, logging

# environment variables
LEX = os.getenv("LEX_URL", "http://lexer-svc:8000/lex")
PARSE = os.getenv("PARSE_URL", "http://parser-svc:8000/evaluate")  # parses, then forwards to evaluator-svc

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI(title="gateway")

@app.get("/healthz")
def healthz():
    return {"ok": True}


class RunResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Value = None
    output: List[str] = []
    diagnostics: List[LoxError] = []


def run_source(source: str, mode: str = "expression") -> RunResult:
    """Lex, parse and evaluate in-process.

    Lexical errors never stop the run; they come back as diagnostics, as do
    tokens left over after an expression. In program mode any parse error
    fails the run, since a batch must not execute half a script.
    """
    parser = Lexer(source).advance_to_parsing()
    evaluator = Evaluator()
    if mode == "program":
        statements = parser.parse_program()
        failed = [d for d in parser.diagnostics if isinstance(d, ParseError)]
        if failed:
            raise failed[0]
        output, value = evaluator.execute(statements)
        return RunResult(value=value, output=output, diagnostics=parser.diagnostics)
    value = evaluator.evaluate(parser.parse_whole())
    return RunResult(value=value, diagnostics=parser.diagnostics)


def client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=10)


class RunReq(BaseModel):
    source: str
    mode: Literal["expression", "program"] = "expression"

@app.post("/run")
async def run(req: RunReq):
    rid = str(uuid.uuid4())
    hdr = {"X-Request-Id": rid}

    try:
        async with client() as c:
            # Step 1: Lexical analysis
            lex = (await c.post(LEX, json={"source": req.source}, headers=hdr)).json()
            if not lex.get("ok"):
                return lex

            # Step 2: parser-svc parses and hands the tree to evaluator-svc
            logger.info("[%s] %d tokens -> %s", rid, len(lex["data"]["tokens"]), PARSE)
            result = (await c.post(PARSE, json={"tokens": lex["data"]["tokens"], "mode": req.mode},
                                   headers=hdr)).json()
    except httpx.HTTPError as e:
        logger.error("[%s] pipeline call failed: %s", rid, e)
        return ApiErr(phase="gateway", code="E_FORWARD_PIPELINE", msg=f"Pipeline service unreachable: {e}")

    if result.get("ok") and lex["data"]["diagnostics"]:
        result["data"]["lex_diagnostics"] = lex["data"]["diagnostics"]
    return result
