import os, sys
# Ensure repo root is on sys.path so the packages can be imported when running from scripts/
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from engine.reference_engine import ReferenceEngine
from engine.session_manager import VisualizerSession
from visual.export_tools import export_timeseries_to_plotly_html, PLOTLY_AVAILABLE


def main(out_html: str = 'docs/demo_timeseries.html'):
    os.makedirs(os.path.dirname(out_html), exist_ok=True)
    session = VisualizerSession(engine=ReferenceEngine(seed=7))
    session.set_molecule('fibronectin')
    session.set_input_value('AngIIin', 1.0)
    session.stamp_at(30, 30)
    session.apply_inputs()
    for cell in [(30, 30), (30, 34), (60, 60)]:
        session.toggle_tracked(*cell)
    session.scheduler.run_for(300)
    if PLOTLY_AVAILABLE:
        export_timeseries_to_plotly_html(session, out_html)
        print(f'Exported {out_html}')
    else:
        print('Plotly not installed; demo export skipped. To export HTML install plotly via pip install plotly')
    # Create a simple index.html if it doesn't exist
    idx_path = os.path.join(os.path.dirname(out_html), 'index.html')
    if not os.path.exists(idx_path):
        with open(idx_path, 'w', encoding='utf-8') as fh:
            fh.write(f"<html><body><h1>ECM Simulation Demo</h1><iframe src=\"{os.path.basename(out_html)}\" width=100% height=500></iframe></body></html>")
        print(f'Created {idx_path}')

if __name__ == '__main__':
    main()
